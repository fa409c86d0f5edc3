"""File staging between the export and import phases.

Each policy is written as a standalone JSON file under a per-kind directory:

    <export_root>/SettingsCatalog/<name>_<ddMMyyyy-H-mm-ss>.json
    <export_root>/DeviceConfiguration/<displayName>_<ddMMyyyy-H-mm-ss>.json

Files are never deleted or overwritten; repeated exports accumulate.
"""

import json
import os
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from ..models.config import PolicyKind, sanitize_filename
from .errors import TransportError, ValidationError
from .transform import clean_for_creation


def format_timestamp(moment: datetime) -> str:
    """Format a staging timestamp as ddMMyyyy-H-mm-ss (hour not zero-padded)."""
    return f"{moment:%d%m%Y}-{moment.hour}-{moment:%M-%S}"


def validate_json(payload: str) -> dict[str, Any]:
    """Check that a payload is a syntactically valid JSON object.

    Args:
        payload: Serialized request body

    Returns:
        The parsed object

    Raises:
        ValidationError: If the payload is empty, malformed or not an object
    """
    if not payload or not payload.strip():
        raise ValidationError("Payload is empty")
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Payload is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError(f"Payload must be a JSON object, got {type(data).__name__}")
    return data


@dataclass
class StagedFile:
    """A policy written to disk by the export phase."""

    kind: PolicyKind
    path: Path
    display_name: str


@dataclass
class ImportOutcome:
    """Result of submitting one staged file."""

    path: Path
    display_name: str
    result: Any = None
    error: Exception | None = None

    @property
    def success(self) -> bool:
        return self.error is None


class ExportStager:
    """Writes creation-ready policies to the export root."""

    def __init__(self, export_root: Path) -> None:
        self.export_root = Path(export_root)

    def _check_root(self) -> None:
        if not self.export_root.is_dir():
            raise OSError(f"Export root does not exist: {self.export_root}")
        if not os.access(self.export_root, os.W_OK):
            raise OSError(f"Export root is not writable: {self.export_root}")

    def _unique_path(self, directory: Path, stem: str) -> Path:
        """Pick a file path that does not exist yet."""
        path = directory / f"{stem}.json"
        counter = 1
        while path.exists():
            path = directory / f"{stem}-{counter}.json"
            counter += 1
        return path

    def stage(
        self,
        kind: PolicyKind,
        policy: dict[str, Any],
        now: datetime | None = None,
    ) -> StagedFile:
        """Write a policy to a new, uniquely named file.

        Args:
            kind: Policy kind (selects the subdirectory and name field)
            policy: Creation-ready policy body
            now: Timestamp to embed in the filename (defaults to now)

        Returns:
            The staged file

        Raises:
            ValidationError: If the policy is empty or cannot be serialized
            OSError: If the export root is missing or the write fails
        """
        if not policy:
            raise ValidationError(f"Refusing to stage an empty {kind.value} policy")

        self._check_root()

        try:
            content = json.dumps(policy, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Policy cannot be serialized to JSON: {e}") from e

        display_name = kind.display_name(policy)
        stem = f"{sanitize_filename(display_name)}_{format_timestamp(now or datetime.now())}"

        directory = self.export_root / kind.subdir
        directory.mkdir(parents=True, exist_ok=True)

        path = self._unique_path(directory, stem)
        with open(path, "x", encoding="utf-8") as f:
            f.write(content)
            f.write("\n")

        return StagedFile(kind=kind, path=path, display_name=display_name)


class ImportStager:
    """Reads staged policies back for submission to the destination tenant."""

    def __init__(self, export_root: Path) -> None:
        self.export_root = Path(export_root)

    def list_files(self, kind: PolicyKind) -> list[Path]:
        """List staged files of a kind in lexical filename order.

        A missing kind directory yields no files.
        """
        directory = self.export_root / kind.subdir
        if not directory.is_dir():
            return []
        return sorted(
            (path for path in directory.glob("*.json") if path.is_file()),
            key=lambda path: path.name,
        )

    def load(self, path: Path) -> dict[str, Any]:
        """Read a staged file and return its creation-ready body.

        The read-only field strip is applied so files staged by hand or by
        older exports are accepted.

        Raises:
            ValidationError: If the file is not a valid, non-empty JSON object
        """
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise ValidationError(f"{path.name}: not UTF-8: {e}", str(path)) from e
        try:
            data = validate_json(text)
        except ValidationError as e:
            raise ValidationError(f"{path.name}: {e}", str(path)) from e
        if not data:
            raise ValidationError(f"{path.name}: staged policy is empty", str(path))
        return clean_for_creation(data)

    def prepare(self, path: Path) -> dict[str, Any]:
        """Load a staged file and pass its re-serialized body through the JSON gate."""
        payload = self.load(path)
        return validate_json(json.dumps(payload, ensure_ascii=False))

    def import_all(
        self,
        kind: PolicyKind,
        submit: Callable[[dict[str, Any]], Any],
        continue_on_error: bool = False,
        on_outcome: Callable[[ImportOutcome], None] | None = None,
    ) -> list[ImportOutcome]:
        """Submit every staged file of a kind in filename order.

        Args:
            kind: Policy kind to import
            submit: Called with each creation-ready body
            continue_on_error: Record per-file failures and keep going instead
                of raising the first one
            on_outcome: Called with each outcome as soon as it is known, including
                the failure that stops a fail-fast import

        Returns:
            One outcome per staged file
        """
        outcomes: list[ImportOutcome] = []

        def record(outcome: ImportOutcome) -> None:
            outcomes.append(outcome)
            if on_outcome is not None:
                on_outcome(outcome)

        for path in self.list_files(kind):
            body: dict[str, Any] = {}
            try:
                body = self.prepare(path)
                result = submit(body)
            except (ValidationError, TransportError, OSError) as e:
                record(ImportOutcome(path, kind.display_name(body) or path.stem, error=e))
                if not continue_on_error:
                    raise
                continue
            record(ImportOutcome(path, kind.display_name(body), result=result))
        return outcomes
