"""Turn a git checkout (or fetched file contents) into parsed source files."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from loguru import logger

from ..config.defaults import RUST_FILE_EXTENSION
from ..parsers.rust import RustParser
from .exceptions import InputError, SourceLoadError
from .git import GitManager
from .models import SourceFile


def parse_source(path: str, source: bytes, parser: RustParser) -> SourceFile:
    """Validate encoding and parse one file.

    Raises:
        SourceLoadError: If the bytes are not valid UTF-8
        ParsingError: If the source has syntax errors
    """
    try:
        source.decode("utf-8")
    except UnicodeDecodeError as e:
        raise SourceLoadError(
            "Source is not valid UTF-8", {"path": path, "offset": e.start}
        ) from e
    return SourceFile(path=path, tree=parser.parse(source, path), source=source)


def parse_sources(
    items: Iterable[tuple[str, bytes]], parser: RustParser | None = None
) -> list[SourceFile]:
    """Parse ``(path, bytes)`` pairs, skipping files that fail to load.

    Returns:
        Parsed files sorted by path
    """
    parser = parser or RustParser()
    files: list[SourceFile] = []
    skipped = 0
    for path, source in items:
        try:
            files.append(parse_source(path, source, parser))
        except InputError as e:
            skipped += 1
            logger.warning(f"Skipping {path}: {e}")
    if skipped:
        logger.info(f"Skipped {skipped} file(s) that could not be parsed")
    return sorted(files, key=lambda file: file.path)


def _read_tracked(root: Path, paths: list[str]) -> Iterable[tuple[str, bytes]]:
    for relative in paths:
        try:
            yield relative, (root / relative).read_bytes()
        except OSError as e:
            logger.warning(f"Skipping {relative}: cannot read file ({e})")


def load_source_files(root: Path, parser: RustParser | None = None) -> list[SourceFile]:
    """Load and parse every tracked ``.rs`` file under a git checkout.

    Args:
        root: Checkout root
        parser: Parser to reuse (a new one is created otherwise)

    Returns:
        Parsed files sorted by relative path

    Raises:
        GitError: If ``root`` is not a usable git checkout
    """
    git = GitManager(root)
    tracked = git.list_tracked_files(RUST_FILE_EXTENSION)
    logger.info(f"Found {len(tracked)} tracked Rust files in {git.project_root}")
    return parse_sources(_read_tracked(git.project_root, tracked), parser)
