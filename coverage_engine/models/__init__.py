from .blocks import BlockKind, DocumentBlock, TableCell, TableData, TableRow

__all__ = ["BlockKind", "DocumentBlock", "TableCell", "TableData", "TableRow"]
