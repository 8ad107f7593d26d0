"""Reversal of the obfuscation sites apply to served page images.

Two families exist:

* ComicFuz encrypts every page with AES-256-CBC under a per-page key and iv.
  The ciphertext is block aligned and carries no padding; the plaintext is a
  directly decodable image container.
* GigaViewer sites scramble pixels by swapping tiles across the diagonal of a
  4x4 grid. The swap is its own inverse, so unscrambling repeats it::

      \\ABC D     \\eim D
      e\\fg h  -> A\\ij h
      ij\\k l     Be\\o l
      mno\\ p     Cfi\\ p
      qrst u     qrst u

  Cells are aligned to multiples of 8 pixels; the right and bottom margins that
  do not fill a cell are never touched.

All functions here are pure and free of I/O.
"""

from __future__ import annotations

import io

import numpy as np
from Crypto.Cipher import AES

from .config import AES_BLOCK_SIZE, AES_KEY_SIZE, CELL_ALIGNMENT, NUM_CELLS
from .errors import InvalidObfuscationParameters, MalformedCipherInput
from .images import SolvedImage, decode_pixels, pixels_to_image
from .models import Cipher, ObfuscationParameters, Passthrough, Permutation


def decrypt_aes_cbc(data: bytes, key: bytes, iv: bytes) -> bytes:
    """Decrypt block-aligned AES-256-CBC ciphertext without stripping padding."""
    if len(key) != AES_KEY_SIZE:
        raise InvalidObfuscationParameters(
            f"Key must be {AES_KEY_SIZE} bytes, got {len(key)}"
        )
    if len(iv) != AES_BLOCK_SIZE:
        raise InvalidObfuscationParameters(
            f"IV must be {AES_BLOCK_SIZE} bytes, got {len(iv)}"
        )
    if len(data) % AES_BLOCK_SIZE:
        raise MalformedCipherInput(
            f"Ciphertext length {len(data)} is not a multiple of {AES_BLOCK_SIZE}"
        )
    return AES.new(key, AES.MODE_CBC, iv=iv).decrypt(data)


def cell_size(dimension: int, num_cells: int = NUM_CELLS, alignment: int = CELL_ALIGNMENT) -> int:
    return dimension // (num_cells * alignment) * alignment


def swap_cells(
    pixels: np.ndarray,
    num_cells: int = NUM_CELLS,
    alignment: int = CELL_ALIGNMENT,
) -> np.ndarray:
    """Swap every upper-triangle cell with its mirror across the diagonal.

    Returns a new array; ``pixels`` is left untouched. Images too small to hold
    one aligned cell come back as an unmodified copy.
    """
    height, width = pixels.shape[:2]
    cell_width = cell_size(width, num_cells, alignment)
    cell_height = cell_size(height, num_cells, alignment)

    solved = pixels.copy()
    if cell_width == 0 or cell_height == 0:
        return solved

    scratch = np.empty_like(solved[:cell_height, :cell_width])
    for i in range(num_cells):
        for j in range(i + 1, num_cells):
            # cell (col=i, row=j) <-> cell (col=j, row=i)
            lower = solved[
                j * cell_height : (j + 1) * cell_height,
                i * cell_width : (i + 1) * cell_width,
            ]
            upper = solved[
                i * cell_height : (i + 1) * cell_height,
                j * cell_width : (j + 1) * cell_width,
            ]
            np.copyto(scratch, lower)
            lower[...] = upper
            upper[...] = scratch
    return solved


def unscramble_image(data: bytes) -> SolvedImage:
    """Decode a scrambled image and return the restored Pillow image."""
    return pixels_to_image(swap_cells(decode_pixels(data)))


def solve(data: bytes, params: ObfuscationParameters) -> SolvedImage:
    """Reverse the obfuscation of one page.

    Cipher pages come back as decrypted container bytes, permuted pages as a
    Pillow image built from the exact pixel buffer, so no lossy step is taken
    before the writer chooses an output encoding.
    """
    if isinstance(params, Cipher):
        return decrypt_aes_cbc(data, params.key, params.iv)
    if isinstance(params, Permutation):
        return unscramble_image(data)
    if isinstance(params, Passthrough):
        return data
    raise InvalidObfuscationParameters(f"Unknown obfuscation parameters: {params!r}")


def reverse(data: bytes, params: ObfuscationParameters) -> bytes:
    """Bytes in, bytes out variant of :func:`solve`.

    Permuted pages are re-encoded as PNG, which keeps every pixel exact.
    """
    solved = solve(data, params)
    if isinstance(solved, bytes):
        return solved
    buffer = io.BytesIO()
    solved.save(buffer, format="PNG")
    return buffer.getvalue()
