import io

import numpy as np
import pytest
from Crypto.Cipher import AES
from PIL import Image

from mangagrab.errors import (
    DecodeFailed,
    InvalidObfuscationParameters,
    MalformedCipherInput,
)
from mangagrab.models import Cipher, Passthrough, Permutation
from mangagrab.solver import cell_size, decrypt_aes_cbc, reverse, solve, swap_cells

from conftest import png_bytes, random_pixels

KEY = bytes.fromhex("2e009856520e10917accae78097a2e13d9dd7a97d3a5ea293527ec9d0132bba3")
IV = bytes.fromhex("e8c7e042d6ba9fb85c128d5ceb64b82f")


@pytest.mark.parametrize(
    "dimension, expected",
    [(800, 200), (1024, 256), (100, 24), (31, 0), (32, 8), (810, 200)],
)
def test_cell_size_rounds_down_to_alignment(dimension, expected):
    assert cell_size(dimension) == expected


@pytest.mark.parametrize("height, width", [(800, 800), (123, 457), (1200, 843), (64, 32)])
def test_swap_cells_is_an_involution(height, width):
    pixels = random_pixels(height, width, seed=height + width)
    assert np.array_equal(swap_cells(swap_cells(pixels)), pixels)


def test_swap_cells_does_not_mutate_input():
    pixels = random_pixels(256, 256)
    before = pixels.copy()
    swapped = swap_cells(pixels)
    assert swapped is not pixels
    assert np.array_equal(pixels, before)


def test_swap_cells_exchanges_mirrored_cells_on_800_square():
    pixels = random_pixels(800, 800, seed=7)
    swapped = swap_cells(pixels)
    size = 200

    def cell(array, col, row):
        return array[row * size : (row + 1) * size, col * size : (col + 1) * size]

    assert np.array_equal(cell(swapped, 0, 1), cell(pixels, 1, 0))
    assert np.array_equal(cell(swapped, 1, 0), cell(pixels, 0, 1))
    for i in range(4):
        assert np.array_equal(cell(swapped, i, i), cell(pixels, i, i))
    for i in range(4):
        for j in range(4):
            if i != j:
                assert np.array_equal(cell(swapped, i, j), cell(pixels, j, i))


def test_swap_cells_leaves_margins_untouched():
    pixels = random_pixels(805, 810, seed=3)
    swapped = swap_cells(pixels)
    extent = 4 * 200
    assert np.array_equal(swapped[extent:, :], pixels[extent:, :])
    assert np.array_equal(swapped[:, extent:], pixels[:, extent:])
    assert not np.array_equal(swapped[:extent, :extent], pixels[:extent, :extent])


def test_swap_cells_returns_small_images_unchanged():
    pixels = random_pixels(20, 500)
    swapped = swap_cells(pixels)
    assert np.array_equal(swapped, pixels)
    assert swapped is not pixels


def test_reverse_permutation_round_trips_through_png():
    original = random_pixels(128, 96, seed=11)
    scrambled = png_bytes(swap_cells(original))
    restored = Image.open(io.BytesIO(reverse(scrambled, Permutation())))
    assert np.array_equal(np.array(restored), original)


def test_solve_permutation_returns_exact_pixels():
    original = random_pixels(64, 64, seed=5)
    solved = solve(png_bytes(swap_cells(original)), Permutation())
    assert np.array_equal(np.array(solved), original)


def test_solve_permutation_rejects_garbage():
    with pytest.raises(DecodeFailed):
        solve(b"definitely not an image", Permutation())


def test_decrypt_round_trips_known_plaintext():
    plaintext = bytes(range(256)) * 3
    ciphertext = AES.new(KEY, AES.MODE_CBC, iv=IV).encrypt(plaintext)
    assert decrypt_aes_cbc(ciphertext, KEY, IV) == plaintext
    assert reverse(ciphertext, Cipher(KEY, IV)) == plaintext


def test_decrypt_chains_blocks_with_previous_ciphertext():
    plaintext = b"A" * 16 + b"B" * 16
    ciphertext = AES.new(KEY, AES.MODE_CBC, iv=IV).encrypt(plaintext)
    ecb = AES.new(KEY, AES.MODE_ECB)
    first = bytes(a ^ b for a, b in zip(ecb.decrypt(ciphertext[:16]), IV))
    second = bytes(a ^ b for a, b in zip(ecb.decrypt(ciphertext[16:]), ciphertext[:16]))
    assert decrypt_aes_cbc(ciphertext, KEY, IV) == first + second


@pytest.mark.parametrize("key, iv", [(KEY[:16], IV), (b"short", IV), (KEY, IV[:8]), (KEY, b"")])
def test_decrypt_rejects_wrong_key_or_iv_length(key, iv):
    with pytest.raises(InvalidObfuscationParameters):
        decrypt_aes_cbc(b"\x00" * 32, key, iv)


@pytest.mark.parametrize("length", [1, 15, 17, 33])
def test_decrypt_rejects_unaligned_input(length):
    with pytest.raises(MalformedCipherInput):
        decrypt_aes_cbc(b"\x00" * length, KEY, IV)


def test_cipher_from_hex_rejects_non_hex():
    with pytest.raises(InvalidObfuscationParameters):
        Cipher.from_hex("not-hex", "00" * 16)


def test_passthrough_returns_bytes_unchanged():
    assert solve(b"payload", Passthrough()) == b"payload"
