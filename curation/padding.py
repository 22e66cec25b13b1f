"""
Fixed-Size Padding
Pad numeric plaintext to a fixed bucket before encryption.

Without padding, ciphertext length tracks the number of digits: a rating
of 5 and a usage of 120000 would be distinguishable by size alone. Every
shielded value in the supported domain fits the first bucket, so all
blobs an observer sees have the same length.
"""

import os


# Room for the 2-byte length header plus the longest float repr
BUCKET_SIZES = [
    32,
    64,
    256,
]

HEADER_SIZE = 2


def pad_to_bucket(data: bytes) -> bytes:
    """
    Pad data to the next fixed bucket size.

    Prepends a 2-byte length header, then fills the bucket with random
    bytes.

    Raises:
        ValueError: If the data does not fit the largest bucket.
    """
    original_len = len(data)

    for size in BUCKET_SIZES:
        if original_len + HEADER_SIZE <= size:
            bucket_size = size
            break
    else:
        raise ValueError(
            f"{original_len} bytes does not fit the largest bucket ({BUCKET_SIZES[-1]})"
        )

    padded = original_len.to_bytes(HEADER_SIZE, "big") + data
    padding_needed = bucket_size - len(padded)
    if padding_needed > 0:
        padded += os.urandom(padding_needed)

    return padded


def unpad_from_bucket(padded: bytes) -> bytes:
    """
    Remove bucket padding and extract original data.

    Raises:
        ValueError: If the header claims more bytes than the bucket holds
            or the bucket is not one of the known sizes.
    """
    if len(padded) not in BUCKET_SIZES:
        raise ValueError(f"{len(padded)} bytes is not a bucket size")

    original_len = int.from_bytes(padded[:HEADER_SIZE], "big")
    if original_len > len(padded) - HEADER_SIZE:
        raise ValueError("Length header exceeds bucket")
    return padded[HEADER_SIZE:HEADER_SIZE + original_len]
