"""Engine output normalization."""

from lumi.parsers.chunks import ChunkFactory
from lumi.parsers.lines import LineReassembler, iter_json_lines
from lumi.parsers.platforms.registry import parse_stream_output, parse_to_lumi_result
from lumi.parsers.stream import TurnStream, stream_chunks

__all__ = [
    "ChunkFactory",
    "LineReassembler",
    "iter_json_lines",
    "parse_stream_output",
    "parse_to_lumi_result",
    "TurnStream",
    "stream_chunks",
]
