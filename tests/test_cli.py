import os

import pytest

from mangagrab.cli import build_config, main, parse_args
from mangagrab.config import Compression, ImageFormat, SaveFormat


def test_parse_args_defaults_to_episode_command():
    args = parse_args(["https://comic-fuz.com/manga/viewer/44994"])
    assert args.command == "episode"
    assert args.url == "https://comic-fuz.com/manga/viewer/44994"
    assert args.save_as == "raw"
    assert args.threads is None


def test_build_config_maps_flags():
    args = parse_args(
        [
            "episode",
            "https://shonenjumpplus.com/episode/1",
            "--save-as",
            "cbz",
            "--format",
            "webp",
            "--compression",
            "stored",
            "--connections",
            "2",
            "--threads",
            "5",
            "--timeout",
            "7.5",
            "--overwrite",
            "--no-progress",
        ]
    )
    config = build_config(args)
    assert config.save_as is SaveFormat.CBZ
    assert config.image_format is ImageFormat.WEBP
    assert config.compression is Compression.STORED
    assert (config.num_connections, config.num_threads) == (2, 5)
    assert config.request_timeout == 7.5
    assert config.overwrite is True
    assert config.progress is False


def test_build_config_uses_cpu_count_by_default():
    config = build_config(parse_args(["https://magcomi.com/episode/1"]))
    assert config.num_threads == (os.cpu_count() or 1)


def test_build_config_rejects_non_positive_timeout():
    with pytest.raises(ValueError):
        build_config(parse_args(["https://magcomi.com/episode/1", "--timeout", "0"]))


def test_connections_must_be_positive():
    with pytest.raises(SystemExit):
        parse_args(["https://magcomi.com/episode/1", "--connections", "0"])


def test_main_exits_nonzero_for_unsupported_site(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        main(["https://example.com/episode/1", "--output-dir", str(tmp_path), "--no-progress"])
    assert excinfo.value.code == 1
    assert list(tmp_path.iterdir()) == []
