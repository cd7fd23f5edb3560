"""
ShaderLoop - Configuration
==========================
Preview settings resolved from the command line.
"""

import argparse
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple


@dataclass
class PreviewConfig:
    """Preview application configuration."""
    source: Optional[Path] = None
    title: str = "ShaderLoop"
    vsync: bool = False
    gl_version: Tuple[int, int] = (3, 3)
    log_level: str = "INFO"

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "PreviewConfig":
        source = Path(args.file).expanduser() if args.file else None
        return cls(
            source=source,
            title=args.title or (f"ShaderLoop - {source.name}" if source else "ShaderLoop"),
            vsync=args.vsync,
            log_level=args.log_level.upper(),
        )

    @property
    def logging_level(self) -> int:
        level = logging.getLevelName(self.log_level)
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {self.log_level}")
        return level

    @property
    def has_source(self) -> bool:
        """Whether there is a readable source file to load and watch."""
        return self.source is not None and self.source.is_file()
