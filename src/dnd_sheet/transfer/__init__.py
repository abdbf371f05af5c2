"""Character import/export in the basic, extended and external dialects."""

from dnd_sheet.transfer.export import (
    export_basic,
    export_extended,
    write_export_file,
)
from dnd_sheet.transfer.external import export_external, parse_external
from dnd_sheet.transfer.importer import ImportResult, import_any

__all__ = [
    "ImportResult",
    "export_basic",
    "export_extended",
    "export_external",
    "import_any",
    "parse_external",
    "write_export_file",
]
