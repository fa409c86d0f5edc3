"""Export/import pipeline between a source and a destination tenant."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from rich.console import Console

from ..models.config import MigrationConfig, PolicyKind
from .client import GraphClient
from .errors import TransportError, ValidationError
from .staging import ExportStager, ImportOutcome, ImportStager
from .transform import PolicyTransform


console = Console()


class PipelineState(Enum):
    """Pipeline lifecycle states."""

    IDLE = "idle"
    AUTHENTICATED_SOURCE = "authenticated_source"
    EXPORTING = "exporting"
    DISCONNECTED = "disconnected"
    AUTHENTICATED_DESTINATION = "authenticated_destination"
    IMPORTING = "importing"
    DONE = "done"  # disconnected, terminal


_TRANSITIONS: dict[PipelineState, tuple[PipelineState, ...]] = {
    PipelineState.IDLE: (PipelineState.AUTHENTICATED_SOURCE, PipelineState.AUTHENTICATED_DESTINATION),
    PipelineState.AUTHENTICATED_SOURCE: (PipelineState.EXPORTING, PipelineState.DISCONNECTED),
    PipelineState.EXPORTING: (PipelineState.DISCONNECTED,),
    PipelineState.DISCONNECTED: (PipelineState.AUTHENTICATED_DESTINATION,),
    PipelineState.AUTHENTICATED_DESTINATION: (PipelineState.IMPORTING, PipelineState.DONE),
    PipelineState.IMPORTING: (PipelineState.DONE,),
    PipelineState.DONE: (),
}


@dataclass
class PolicyResult:
    """Result of exporting or importing a single policy."""

    success: bool
    kind: PolicyKind
    name: str
    operation: str  # "export" or "import"
    message: str
    path: str | None = None


@dataclass
class RunSummary:
    """Per-policy results accumulated over a run."""

    results: list[PolicyResult] = field(default_factory=list)

    def add(self, result: PolicyResult) -> None:
        self.results.append(result)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def counts(self) -> dict[tuple[str, PolicyKind], tuple[int, int]]:
        """(succeeded, failed) per (operation, kind)."""
        counts: dict[tuple[str, PolicyKind], tuple[int, int]] = {}
        for r in self.results:
            ok, failed = counts.get((r.operation, r.kind), (0, 0))
            counts[(r.operation, r.kind)] = (ok + 1, failed) if r.success else (ok, failed + 1)
        return counts


def describe_error(error: Exception) -> str:
    """Operator-facing description of an error, including HTTP status and body."""
    if isinstance(error, TransportError) and error.status_code is not None:
        return f"HTTP {error.status_code}: {error.body or error}"
    return str(error)


class PipelineDriver:
    """Runs source export followed by destination import.

    The phases are strictly sequential: every policy of both kinds is exported
    and the source session closed before the destination is contacted.
    """

    def __init__(
        self,
        config: MigrationConfig,
        client: GraphClient | None = None,
        destination_client: GraphClient | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            config: Run configuration
            client: Client used for the source (and destination, unless overridden)
            destination_client: Separate client for the destination tenant
        """
        self.config = config
        self.source_client = client or GraphClient(config)
        self.destination_client = destination_client or self.source_client
        self.state = PipelineState.IDLE
        self.summary = RunSummary()

    def _check_transition(self, new_state: PipelineState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid pipeline transition: {self.state.value} -> {new_state.value}")

    def _transition(self, new_state: PipelineState) -> None:
        self._check_transition(new_state)
        self.state = new_state

    @property
    def export_root(self) -> Path:
        if not self.config.export_root:
            raise ValueError("Export root is not configured")
        return Path(self.config.export_root)

    def prepare_export_root(self) -> Path:
        """Ensure the export root exists, creating it when configured to.

        Raises:
            OSError: If the root is missing and create_if_missing is off
        """
        root = self.export_root
        if root.is_dir():
            return root
        if root.exists():
            raise OSError(f"Export root is not a directory: {root}")
        if not self.config.create_if_missing:
            raise OSError(f"Export root does not exist: {root} (set create_if_missing to create it)")

        root.mkdir(parents=True, exist_ok=True)
        for kind in PolicyKind:
            (root / kind.subdir).mkdir(exist_ok=True)
        console.print(f"[blue]Created export root:[/blue] {root}")
        return root

    def require_staged_root(self) -> Path:
        """Return the export root an import reads from.

        Raises:
            OSError: If the root is missing, so a mistyped path cannot pass as an empty import
        """
        root = self.export_root
        if not root.is_dir():
            raise OSError(f"Export root does not exist: {root}")
        return root

    # =========================================================================
    # Export
    # =========================================================================

    def export(self) -> RunSummary:
        """Export every policy of both kinds from the source tenant.

        Raises:
            TransportError: If authentication or a collection listing fails
        """
        self._check_transition(PipelineState.AUTHENTICATED_SOURCE)
        root = self.prepare_export_root()
        client = self.source_client

        console.print(f"\n[bold]Connecting to source tenant:[/bold] {self.config.source.tenant_id}")
        client.connect(self.config.source.tenant_id)
        self._transition(PipelineState.AUTHENTICATED_SOURCE)

        try:
            self._transition(PipelineState.EXPORTING)
            transform = PolicyTransform(client)
            stager = ExportStager(root)
            for kind in PolicyKind:
                console.print(f"\n[bold blue]Exporting {kind.value} policies[/bold blue]")
                platform = self.config.platform if kind is PolicyKind.SETTINGS_CATALOG else None
                for raw in client.iter_policies(kind, platform=platform):
                    self.summary.add(self._export_one(kind, raw, transform, stager))
        finally:
            client.disconnect()
            self._transition(PipelineState.DISCONNECTED)

        return self.summary

    def _export_one(
        self,
        kind: PolicyKind,
        raw: dict[str, Any],
        transform: PolicyTransform,
        stager: ExportStager,
    ) -> PolicyResult:
        name = kind.display_name(raw)
        try:
            creatable = transform.to_creatable(kind, raw)
            staged = stager.stage(kind, creatable)
        except (TransportError, ValidationError, OSError) as e:
            console.print(f"  [red]FAILED[/red] {name}: {describe_error(e)}")
            failure = PolicyResult(False, kind, name, "export", describe_error(e))
            if not self.config.continue_on_error:
                self.summary.add(failure)
                raise
            return failure

        console.print(f"  [green]Exported[/green] {name} -> {staged.path.name}")
        return PolicyResult(True, kind, name, "export", "Staged", str(staged.path))

    # =========================================================================
    # Import
    # =========================================================================

    def import_(self) -> RunSummary:
        """Create every staged policy of both kinds in the destination tenant.

        Raises:
            OSError: If the export root does not exist
            TransportError: If authentication fails
        """
        self._check_transition(PipelineState.AUTHENTICATED_DESTINATION)
        stager = ImportStager(self.require_staged_root())
        client = self.destination_client

        console.print(
            f"\n[bold]Connecting to destination tenant:[/bold] {self.config.destination.tenant_id}"
        )
        client.connect(self.config.destination.tenant_id)
        self._transition(PipelineState.AUTHENTICATED_DESTINATION)

        try:
            self._transition(PipelineState.IMPORTING)
            for kind in PolicyKind:
                console.print(f"\n[bold blue]Importing {kind.value} policies[/bold blue]")
                stager.import_all(
                    kind,
                    submit=lambda body, kind=kind: client.create_policy(kind, body),
                    continue_on_error=self.config.continue_on_error,
                    on_outcome=lambda outcome, kind=kind: self.summary.add(self._import_result(kind, outcome)),
                )
        finally:
            client.disconnect()
            self._transition(PipelineState.DONE)

        return self.summary

    def _import_result(self, kind: PolicyKind, outcome: ImportOutcome) -> PolicyResult:
        if outcome.error is not None:
            message = describe_error(outcome.error)
            console.print(f"  [red]FAILED[/red] {outcome.path.name}: {message}")
            return PolicyResult(False, kind, outcome.display_name, "import", message, str(outcome.path))

        created_id = (outcome.result or {}).get("id", "")
        console.print(f"  [green]Created[/green] {outcome.display_name} {created_id}".rstrip())
        return PolicyResult(True, kind, outcome.display_name, "import", "Created", str(outcome.path))

    def validate_staged(self) -> RunSummary:
        """Check every staged file against the JSON gate without contacting a tenant."""
        stager = ImportStager(self.require_staged_root())
        for kind in PolicyKind:
            outcomes = stager.import_all(kind, submit=lambda body: None, continue_on_error=True)
            for outcome in outcomes:
                if outcome.error is not None:
                    self.summary.add(self._import_result(kind, outcome))
                    continue
                console.print(f"  [dim]Would create[/dim] {kind.value}: {outcome.display_name}")
                self.summary.add(PolicyResult(
                    True, kind, outcome.display_name, "import", "Validated (dry run)", str(outcome.path),
                ))
        return self.summary

    # =========================================================================
    # Full run
    # =========================================================================

    def run(self) -> RunSummary:
        """Export from the source tenant, then import into the destination."""
        self.export()
        self.import_()
        return self.summary
