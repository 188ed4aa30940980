"""Directory path resolution for graph nodes."""

from __future__ import annotations

from .models import Node

ROOT_PATH = "/"


def normalize_path(path: str) -> str:
    return path.replace("\\", "/")


def _parent_of(path: str) -> str:
    parts = normalize_path(path).split("/")
    parts.pop()
    return "/".join(parts) or ROOT_PATH


def directory_path(node: Node) -> str:
    """Return the directory a node is grouped under.

    Directories map to their own id. Everything else maps to the parent of
    its file path, or of the file part of a ``file::symbol`` id, or of the
    id itself. Top-level items resolve to ``/``.
    """
    if node.type == "directory":
        return node.id
    if node.file_path:
        return _parent_of(node.file_path)
    if "::" in node.id:
        return _parent_of(node.id.split("::")[0])
    return _parent_of(node.id)


def path_depth(path: str) -> int:
    if path in (ROOT_PATH, ""):
        return 0
    return len([part for part in path.split("/") if part])


def path_label(path: str) -> str:
    parts = [part for part in path.split("/") if part]
    return parts[-1] if parts else "root"
