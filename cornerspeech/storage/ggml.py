"""Structural check of whisper.cpp ggml model files."""

import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from ..errors import ModelFormatError

GGML_MAGIC = 0x67676D6C
# uint32 magic followed by eleven int32 hyper-parameters
HEADER_FORMAT = "<I11i"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)


@dataclass(frozen=True)
class ModelHeader:
    n_vocab: int
    n_audio_ctx: int
    n_audio_state: int
    n_audio_head: int
    n_audio_layer: int
    n_text_ctx: int
    n_text_state: int
    n_text_head: int
    n_text_layer: int
    n_mels: int
    ftype: int


def pack_model_header(header: ModelHeader) -> bytes:
    return struct.pack(
        HEADER_FORMAT, GGML_MAGIC,
        header.n_vocab, header.n_audio_ctx, header.n_audio_state, header.n_audio_head,
        header.n_audio_layer, header.n_text_ctx, header.n_text_state, header.n_text_head,
        header.n_text_layer, header.n_mels, header.ftype,
    )


def read_model_header(path: Union[str, Path]) -> ModelHeader:
    """Read and validate the ggml header of a model file.

    Raises:
        ModelFormatError: The file is truncated, has the wrong magic or
            nonsensical hyper-parameters
    """
    try:
        with open(path, "rb") as f:
            raw = f.read(HEADER_SIZE)
    except OSError as e:
        raise ModelFormatError(f"Cannot read model file {path}: {e}") from e

    if len(raw) < HEADER_SIZE:
        raise ModelFormatError(f"Model file {path} is truncated ({len(raw)} bytes)")

    magic, *params = struct.unpack(HEADER_FORMAT, raw)
    if magic != GGML_MAGIC:
        raise ModelFormatError(f"Bad model magic 0x{magic:08x} in {path}")

    header = ModelHeader(*params)
    if min(params[:10]) <= 0 or header.ftype < 0:
        raise ModelFormatError(f"Invalid model hyper-parameters in {path}: {header}")
    return header
