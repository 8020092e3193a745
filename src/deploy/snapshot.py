"""Immutable snapshots of the built site assets."""

from __future__ import annotations

import hashlib
import mimetypes
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def _digest(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def guess_content_type(path: str) -> str:
    content_type, _ = mimetypes.guess_type(path)
    return content_type or DEFAULT_CONTENT_TYPE


@dataclass(frozen=True)
class AssetFile:
    """One published file. ``content`` is None for manifest-only snapshots."""

    digest: str
    content: bytes | None = None
    content_type: str = DEFAULT_CONTENT_TYPE

    @classmethod
    def from_bytes(cls, path: str, content: bytes) -> "AssetFile":
        return cls(digest=_digest(content), content=content, content_type=guess_content_type(path))


@dataclass(frozen=True)
class AssetSnapshot:
    files: Mapping[str, AssetFile] = field(default_factory=dict)
    root_document: str = "index.html"

    def __post_init__(self) -> None:
        for path in self.files:
            if path.startswith("/") or not path:
                raise ValueError(f"Snapshot paths must be relative, got: {path!r}")
        object.__setattr__(self, "files", MappingProxyType(dict(self.files)))

    @classmethod
    def from_directory(cls, root: str | Path, *, root_document: str = "index.html") -> "AssetSnapshot":
        """Read every file under ``root`` into a snapshot keyed by POSIX relative path."""
        base = Path(root)
        if not base.is_dir():
            raise FileNotFoundError(f"Site directory not found: {base}")
        files: dict[str, AssetFile] = {}
        for item in sorted(base.rglob("*")):
            if not item.is_file():
                continue
            rel = item.relative_to(base).as_posix()
            files[rel] = AssetFile.from_bytes(rel, item.read_bytes())
        return cls(files=files, root_document=root_document)

    @classmethod
    def from_manifest(cls, manifest: dict) -> "AssetSnapshot":
        """Rebuild a digest-only snapshot from ``to_manifest`` output."""
        files = {
            path: AssetFile(digest=entry["digest"], content_type=entry.get("content_type", DEFAULT_CONTENT_TYPE))
            for path, entry in manifest.get("files", {}).items()
        }
        return cls(files=files, root_document=manifest.get("root_document", "index.html"))

    def to_manifest(self) -> dict:
        return {
            "root_document": self.root_document,
            "files": {
                path: {"digest": asset.digest, "content_type": asset.content_type}
                for path, asset in sorted(self.files.items())
            },
        }

    def diff(self, previous: "AssetSnapshot | None") -> set[str]:
        """Paths added, modified, or removed relative to ``previous``.

        With no previous snapshot every file counts as changed.
        """
        if previous is None:
            return set(self.files)
        changed = {
            path
            for path, asset in self.files.items()
            if path not in previous.files or previous.files[path].digest != asset.digest
        }
        changed.update(set(previous.files) - set(self.files))
        return changed

    def removed_since(self, previous: "AssetSnapshot | None") -> set[str]:
        if previous is None:
            return set()
        return set(previous.files) - set(self.files)
