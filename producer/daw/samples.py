"""Sample-library scanner for the reference host.

Samples live under one or more root directories (factory first, then user).
A *category* is a first-level sub-directory of a root; listing recurses into
nested folders.  Only files with a recognised audio extension are reported.
"""
from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from pathlib import Path

from producer.config import SAMPLE_EXTENSIONS
from producer.contracts.host_types import SampleCategory, SampleInfo

logger = logging.getLogger(__name__)


def _is_sample(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() in SAMPLE_EXTENSIONS


class SampleLibrary:
    """Read-only view over the sample directories."""

    def __init__(self, roots: Sequence[Path | None]) -> None:
        self.roots: list[Path] = [Path(r) for r in roots if r is not None]

    def _existing_roots(self) -> Iterator[Path]:
        for root in self.roots:
            if root.is_dir():
                yield root
            else:
                logger.debug("Sample root %s does not exist; skipping", root)

    def categories(self) -> list[SampleCategory]:
        """First-level folders across all roots, de-duplicated by name."""
        seen: set[str] = set()
        out: list[SampleCategory] = []
        for root in self._existing_roots():
            for sub in sorted(p for p in root.iterdir() if p.is_dir()):
                if sub.name in seen:
                    continue
                seen.add(sub.name)
                file_count = sum(1 for f in sub.iterdir() if _is_sample(f))
                out.append(SampleCategory(name=sub.name, path=str(sub), file_count=file_count))
        return out

    def samples(
        self,
        *,
        category: str | None = None,
        search: str | None = None,
        limit: int,
    ) -> list[SampleInfo]:
        """Up to ``limit`` samples whose file name contains ``search`` (case-insensitive)."""
        needle = (search or "").lower()
        out: list[SampleInfo] = []
        if limit <= 0:
            return out

        for root in self._existing_roots():
            search_dir = root / category if category else root
            if not search_dir.is_dir():
                continue
            for path in sorted(search_dir.rglob("*")):
                if not _is_sample(path):
                    continue
                if needle and needle not in path.name.lower():
                    continue
                info = SampleInfo(name=path.name, path=str(path))
                relative_parent = path.parent.relative_to(root).as_posix()
                if relative_parent != ".":
                    info["category"] = relative_parent
                out.append(info)
                if len(out) >= limit:
                    return out
        return out
