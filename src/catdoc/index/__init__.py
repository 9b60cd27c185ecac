"""Change detection, structure extraction and incremental directory tree scans."""

from .changes import ChangeStatus, find_changed_files, has_changed, load_cache
from .discovery import SourceCandidate, discover_source_files, md5_bytes, md5_file
from .manager import ScanManager
from .models import (
    CodeItem,
    DirectoryNode,
    FileNode,
    FileRecord,
    FileStructure,
    ProjectCache,
    ScanResult,
    TreeNode,
)
from .structure import StructureExtractor, reduce_captures
from .tree import TreeMerger, find_file

__all__ = [
    "ChangeStatus",
    "CodeItem",
    "DirectoryNode",
    "FileNode",
    "FileRecord",
    "FileStructure",
    "ProjectCache",
    "ScanManager",
    "ScanResult",
    "SourceCandidate",
    "StructureExtractor",
    "TreeMerger",
    "TreeNode",
    "discover_source_files",
    "find_changed_files",
    "find_file",
    "has_changed",
    "load_cache",
    "md5_bytes",
    "md5_file",
    "reduce_captures",
]
