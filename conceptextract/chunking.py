# Copyright 2025 Google LLC.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Splits documents into chunks that fit in a single annotation query.

Chunks never overlap and are cut at sentence ends where possible, then at
whitespace, and only as a last resort in the middle of a word. Concatenating
the chunks always gives back the original text.
"""

from __future__ import annotations

from collections.abc import Iterator

from conceptextract.core import data

SENTENCE_TERMINATOR = "."


def _find_split(text: str, max_size: int) -> int:
    """Returns the index of the last character of the next chunk."""
    split = text.rfind(SENTENCE_TERMINATOR, 0, max_size)
    if split != -1:
        # Keep the blank that follows the sentence with it when it fits.
        if split + 1 < max_size and text[split + 1].isspace():
            split += 1
        return split
    for i in range(max_size - 1, -1, -1):
        if text[i].isspace():
            return i
    return max_size - 1


class TextChunker:
    """Iterates over the chunks of a text.

    Usage example:
        for chunk in TextChunker(text, max_size=3000):
            service.query(chunk.text, language)
    """

    def __init__(self, text: str, max_size: int):
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}.")
        self.text = text
        self.max_size = max_size

    def __iter__(self) -> Iterator[data.ChunkDescriptor]:
        remain = self.text
        offset = 0
        index = 0
        while len(remain) > self.max_size:
            split = _find_split(remain, self.max_size)
            chunk = remain[: split + 1]
            yield data.ChunkDescriptor(text=chunk, offset=offset, index=index)
            offset += len(chunk)
            index += 1
            remain = remain[split + 1 :]
        yield data.ChunkDescriptor(text=remain, offset=offset, index=index)


def chunk_text(text: str, max_size: int) -> list[data.ChunkDescriptor]:
    """Splits ``text`` into chunks of at most ``max_size`` characters."""
    return list(TextChunker(text, max_size))
