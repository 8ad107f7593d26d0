"""High-level orchestration: locate, fetch, solve, reorder and write an episode."""

from __future__ import annotations

import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence

from .config import PipelineConfig
from .errors import DecodeFailed, MangaGrabError
from .fetcher import fetch_pages
from .locator import locate
from .models import Episode, FetchedPage, ImagePage, PipelineJob, SolvedPage
from .progress import ProgressConfig
from .scope import gather_unordered
from .sites import open_site_client
from .solver import solve
from .utils import sanitize_filename
from .writers import EpisodeWriter, create_writer

logger = logging.getLogger("mangagrab")


class Stage(Enum):
    LOCATING = "locating"
    FETCHING_EPISODE = "fetching_episode"
    FETCHING_PAGES = "fetching_pages"
    SOLVING = "solving"
    SORTING = "sorting"
    WRITING = "writing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class DownloadResult:
    """Summary of a finished job."""

    episode_id: str
    title: Optional[str]
    destination: Path
    page_count: int
    total_seconds: float


def _tag(exc: BaseException, stage: Stage, index: Optional[int] = None) -> None:
    if isinstance(exc, MangaGrabError):
        if exc.stage is None:
            exc.stage = stage.value
        if exc.index is None and index is not None:
            exc.index = index


class EpisodePipeline:
    """Downloads one episode per call with bounded network and CPU concurrency.

    Page fetches share a budget of ``num_connections`` in-flight requests on the
    event loop. Solving and encoding run on a separate pool of ``num_threads``
    workers, so a page starts solving as soon as its bytes arrive without
    holding up other downloads. Completion order is arbitrary; pages are sorted
    back into reading order once, right before the writer sees them.
    """

    def __init__(
        self,
        config: PipelineConfig,
        writer: Optional[EpisodeWriter] = None,
    ) -> None:
        self.config = config
        self.writer = writer or create_writer(config)
        self.progress = ProgressConfig(enabled=config.progress)
        self.history: List[Stage] = []

    @property
    def stage(self) -> Optional[Stage]:
        return self.history[-1] if self.history else None

    def _enter(self, stage: Stage) -> None:
        self.history.append(stage)
        logger.debug("Stage -> %s", stage.value)

    def _fail(self, exc: BaseException) -> None:
        if self.stage is not None:
            _tag(exc, self.stage)
        if self.stage is not Stage.FAILED:
            self._enter(Stage.FAILED)

    async def download(
        self,
        url: str,
        output_dir: Path = Path("."),
        destination: Optional[Path] = None,
    ) -> DownloadResult:
        """Download the episode at ``url``.

        The artifact is written to ``destination`` if given, otherwise into
        ``output_dir`` under a name derived from the episode title.
        """
        self.history = [Stage.LOCATING]
        try:
            site, episode_id = locate(url)
        except BaseException as exc:
            self._fail(exc)
            raise
        logger.info("Resolved %s to %s episode %s", url, site.name, episode_id)
        job = PipelineJob(
            episode_id=episode_id,
            config=self.config,
            output_dir=Path(output_dir),
            destination=Path(destination) if destination is not None else None,
        )
        async with open_site_client(site, self.config.request_timeout) as client:
            return await self._execute(client, job)

    async def run(self, client, job: PipelineJob) -> DownloadResult:
        """Run a job against an already opened site client."""
        self.history = []
        return await self._execute(client, job)

    async def _execute(self, client, job: PipelineJob) -> DownloadResult:
        start = time.perf_counter()
        executor = ThreadPoolExecutor(
            max_workers=self.config.num_threads, thread_name_prefix="mangagrab-solve"
        )
        try:
            self._enter(Stage.FETCHING_EPISODE)
            episode = await client.fetch_episode(job.episode_id)
            pages = episode.image_pages()
            destination = self._resolve_destination(job, episode)
            self.writer.ensure_writable(destination)
            logger.info(
                "Episode %s (%s): %d image pages",
                episode.id,
                episode.title or "untitled",
                len(pages),
            )

            self._enter(Stage.FETCHING_PAGES)
            solved = await self._process_pages(client, pages, executor)

            self._enter(Stage.SORTING)
            ordered = sorted(solved, key=lambda page: page.index)

            self._enter(Stage.WRITING)
            loop = asyncio.get_running_loop()
            written = await loop.run_in_executor(
                executor,
                self.writer.write,
                [page.image for page in ordered],
                destination,
            )
            self._enter(Stage.DONE)
        except BaseException as exc:
            self._fail(exc)
            raise
        finally:
            # Join the workers without blocking the event loop.
            await asyncio.to_thread(executor.shutdown, wait=True, cancel_futures=True)

        elapsed = time.perf_counter() - start
        logger.info("Finished %s in %.2fs", written, elapsed)
        return DownloadResult(
            episode_id=episode.id,
            title=episode.title,
            destination=written,
            page_count=len(ordered),
            total_seconds=elapsed,
        )

    def _resolve_destination(self, job: PipelineJob, episode: Episode) -> Path:
        if job.destination is not None:
            return job.destination
        name = sanitize_filename(episode.title or "", fallback=episode.id)
        return self.writer.destination_for(job.output_dir, name)

    async def _process_pages(
        self,
        client,
        pages: Sequence[ImagePage],
        executor: ThreadPoolExecutor,
    ) -> List[SolvedPage]:
        """Fetch and solve every page; results come back in completion order."""
        loop = asyncio.get_running_loop()
        remaining = len(pages)
        if not pages:
            self._enter(Stage.SOLVING)
            return []

        with self.progress.bar(len(pages), "Downloading") as bar:

            async def solve_fetched(fetched: FetchedPage) -> SolvedPage:
                nonlocal remaining
                remaining -= 1
                if remaining == 0:
                    self._enter(Stage.SOLVING)
                try:
                    result = await loop.run_in_executor(executor, self._solve_page, fetched)
                except BaseException as exc:
                    _tag(exc, Stage.SOLVING, fetched.index)
                    raise
                bar.update(1)
                return result

            return await fetch_pages(
                client, pages, self.config.num_connections, then=solve_fetched
            )

    def _solve_page(self, fetched: FetchedPage) -> SolvedPage:
        """Reverse obfuscation and encode one page. Runs on a worker thread."""
        try:
            image = self.writer.encode_page(solve(fetched.data, fetched.page.params))
        except MangaGrabError:
            raise
        except (OSError, ValueError) as exc:
            raise DecodeFailed(
                f"Cannot process page image: {exc}", index=fetched.index
            ) from exc
        logger.debug("Solved page %d", fetched.index)
        return SolvedPage(index=fetched.index, image=image)


async def download_episode(
    url: str,
    config: PipelineConfig,
    output_dir: Path = Path("."),
    destination: Optional[Path] = None,
) -> DownloadResult:
    """Convenience wrapper running one job with a fresh pipeline."""
    pipeline = EpisodePipeline(config)
    return await pipeline.download(url, output_dir=output_dir, destination=destination)
