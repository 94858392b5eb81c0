"""Service layer: integrity, migrations, assembly, write serialization."""

from .assembler import assemble_board, assemble_boards, assemble_card, assemble_column
from .board_store import BoardStore
from .integrity import Diagnostic, IntegrityChecker, IntegrityReport
from .migrations import (
    CURRENT_VERSION,
    MIGRATIONS,
    Migration,
    MigrationPipeline,
    decode_raw,
)
from .save_queue import QueueState, SaveQueue

__all__ = [
    "CURRENT_VERSION",
    "MIGRATIONS",
    "BoardStore",
    "Diagnostic",
    "IntegrityChecker",
    "IntegrityReport",
    "Migration",
    "MigrationPipeline",
    "QueueState",
    "SaveQueue",
    "assemble_board",
    "assemble_boards",
    "assemble_card",
    "assemble_column",
    "decode_raw",
]
