import json
import logging
import zipfile
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

SUPPORTED_SUFFIXES = (".json", ".zip")


@dataclass(frozen=True)
class InputMeta:
    parsed_json_count: int = 0
    zip_count: int = 0
    json_count: int = 0
    skipped_count: int = 0


@dataclass
class LoadedHistory:
    records: list[dict[str, Any]] = field(default_factory=list)
    meta: InputMeta = field(default_factory=InputMeta)


def parse_json_text(text: str, label: str) -> list[dict[str, Any]]:
    """Parse one streaming-history document into its record objects.

    Args:
        text (str): Raw JSON text.
        label (str): Name used in error messages.

    Returns:
        List[dict]: The object items of the top-level array; other items
            (numbers, strings, nested arrays, nulls) are dropped.

    Raises:
        ValueError: If the text is not valid JSON or not a JSON array.
    """
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {label}") from exc

    if not isinstance(parsed, list):
        raise ValueError(f"Expected a JSON array in {label}")

    return [item for item in parsed if isinstance(item, dict)]


def _read_zip(path: Path) -> tuple[list[dict[str, Any]], int, int]:
    """Return (records, parsed JSON members, skipped members) for an archive."""
    records: list[dict[str, Any]] = []
    parsed = 0
    skipped = 0

    with zipfile.ZipFile(path) as archive:
        members = [
            info
            for info in archive.infolist()
            if not info.is_dir() and info.filename.lower().endswith(".json")
        ]
        if not members:
            logger.warning("No JSON files found inside %s.", path.name)
            return records, 0, 1

        for info in members:
            label = f"{path.name} -> {info.filename}"
            try:
                text = archive.read(info).decode("utf-8-sig")
                records.extend(parse_json_text(text, label))
                parsed += 1
            except (ValueError, UnicodeDecodeError, zipfile.BadZipFile) as exc:
                skipped += 1
                logger.warning("Failed to parse %s: %s", info.filename, exc)

    logger.info("Parsed %d JSON file(s) from %s.", parsed, path.name)
    return records, parsed, skipped


def _expand_paths(paths: Iterable[str | Path]) -> list[Path]:
    expanded: list[Path] = []
    for raw in paths:
        path = Path(raw)
        if not path.exists():
            raise FileNotFoundError(f"Listening history path not found: {path}")
        if path.is_dir():
            expanded.extend(
                sorted(
                    child
                    for child in path.iterdir()
                    if child.is_file() and child.suffix.lower() in SUPPORTED_SUFFIXES
                )
            )
        else:
            expanded.append(path)
    return expanded


def load_listening_records(paths: Iterable[str | Path]) -> LoadedHistory:
    """Load raw streaming-history records from JSON files and ZIP archives.

    Directories are expanded to the `.json` and `.zip` files they contain
    (not recursively), in name order. Files that cannot be parsed, and files
    of any other type, are skipped with a warning and counted.

    Args:
        paths: Files or directories holding Spotify streaming history exports.

    Returns:
        LoadedHistory: Records in file order plus counters describing the
            inputs that were read or skipped.

    Raises:
        FileNotFoundError: If one of the given paths does not exist.
    """
    records: list[dict[str, Any]] = []
    parsed_json = 0
    zip_count = 0
    json_count = 0
    skipped = 0

    for path in _expand_paths(paths):
        suffix = path.suffix.lower()
        if suffix == ".zip":
            zip_count += 1
            logger.info("Scanning ZIP: %s", path.name)
            try:
                zip_records, zip_parsed, zip_skipped = _read_zip(path)
            except zipfile.BadZipFile as exc:
                skipped += 1
                logger.warning("Failed to open %s: %s", path.name, exc)
                continue
            records.extend(zip_records)
            parsed_json += zip_parsed
            skipped += zip_skipped
        elif suffix == ".json":
            json_count += 1
            try:
                text = path.read_text(encoding="utf-8-sig")
                records.extend(parse_json_text(text, path.name))
                parsed_json += 1
            except (ValueError, UnicodeDecodeError) as exc:
                skipped += 1
                logger.warning("Failed to parse %s: %s", path.name, exc)
        else:
            skipped += 1
            logger.warning("Unsupported file skipped: %s", path.name)

    if zip_count:
        logger.info("ZIP files processed: %d", zip_count)
    if json_count:
        logger.info("Direct JSON files processed: %d", json_count)
    if skipped:
        logger.warning("Skipped entries/files: %d", skipped)

    return LoadedHistory(
        records=records,
        meta=InputMeta(
            parsed_json_count=parsed_json,
            zip_count=zip_count,
            json_count=json_count,
            skipped_count=skipped,
        ),
    )


__all__ = ["InputMeta", "LoadedHistory", "load_listening_records", "parse_json_text"]
