"""contextor document generation — markdown templates and file output."""

from contextor.generate.writer import validate_output_path, write_output

__all__ = ["validate_output_path", "write_output"]
