"""
ubimkvol volume creation pipeline.

Runs one invocation from command-line tokens to the final report:

    START -> ARGS_PARSED -> VALIDATED -> SIZE_RESOLVED -> CREATED -> REPORTED

Any failing step moves straight to FAILED. There are no retries and no
way back to an earlier state. Help and version requests end the run
before the device manager is touched.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum, auto

import humanize

from ubimkvol.core.builder import (
    build_request,
    format_report,
    issue_request,
    query_created_volume,
    query_device,
    resolve_size,
)
from ubimkvol.core.config import MAX_NODE_LEN
from ubimkvol.core.errors import BackendError, DeviceQueryFailed, UbiMkvolError
from ubimkvol.core.logging import get_logger
from ubimkvol.core.models import CreateRequest, VolumeInfo, VolumeRequestConfig
from ubimkvol.core.resolver import Help, Resolved, Version, resolve_arguments
from ubimkvol.core.validator import sanity_check
from ubimkvol.platform.base import VolumeManagerBackend

logger = get_logger(__name__)


class PipelineState(Enum):
    """Stage reached by an invocation."""

    START = auto()
    ARGS_PARSED = auto()
    VALIDATED = auto()
    SIZE_RESOLVED = auto()
    CREATED = auto()
    REPORTED = auto()
    HELP = auto()
    VERSION = auto()
    FAILED = auto()

    @property
    def is_terminal(self) -> bool:
        return self in (
            PipelineState.REPORTED,
            PipelineState.HELP,
            PipelineState.VERSION,
            PipelineState.FAILED,
        )


_FORWARD = [
    PipelineState.START,
    PipelineState.ARGS_PARSED,
    PipelineState.VALIDATED,
    PipelineState.SIZE_RESOLVED,
    PipelineState.CREATED,
    PipelineState.REPORTED,
]


@dataclass
class PipelineResult:
    """Outcome of one invocation."""

    state: PipelineState
    messages: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: UbiMkvolError | None = None
    config: VolumeRequestConfig | None = None
    request: CreateRequest | None = None
    volume_id: int | None = None
    volume_info: VolumeInfo | None = None

    @property
    def success(self) -> bool:
        return self.state is not PipelineState.FAILED

    @property
    def failure_kind(self) -> str | None:
        return self.error.kind if self.error else None

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1


class VolumeCreationPipeline:
    """Single-use driver for one ubimkvol invocation."""

    def __init__(
        self,
        backend: VolumeManagerBackend,
        max_node_length: int = MAX_NODE_LEN,
    ) -> None:
        self.backend = backend
        self.max_node_length = max_node_length
        self.state = PipelineState.START
        self._result = PipelineResult(state=self.state)

    def _advance(self, state: PipelineState) -> None:
        if self.state.is_terminal:
            raise RuntimeError(f"Pipeline already finished in state {self.state.name}")
        if state in _FORWARD and _FORWARD.index(state) != _FORWARD.index(self.state) + 1:
            raise RuntimeError(f"Invalid transition {self.state.name} -> {state.name}")

        logger.debug("Pipeline transition", source=self.state.name, target=state.name)
        self.state = state
        self._result.state = state

    def _fail(self, error: UbiMkvolError) -> PipelineResult:
        logger.debug(
            "Pipeline failed",
            stage=self.state.name,
            kind=error.kind,
            error=str(error),
        )
        self._result.error = error
        self._advance(PipelineState.FAILED)
        return self._result

    def run(self, tokens: Sequence[str]) -> PipelineResult:
        """Resolve, validate, create and report. Never raises UbiMkvolError."""
        if self.state is not PipelineState.START:
            raise RuntimeError("VolumeCreationPipeline instances are single-use")

        resolution = resolve_arguments(tokens, self.max_node_length)
        if isinstance(resolution, Help):
            self._result.messages.append(resolution.text)
            self._advance(PipelineState.HELP)
            return self._result
        if isinstance(resolution, Version):
            self._result.messages.append(resolution.text)
            self._advance(PipelineState.VERSION)
            return self._result
        if not isinstance(resolution, Resolved):
            return self._fail(resolution.error)

        self._result.warnings.extend(resolution.warnings)
        self._result.config = resolution.config
        self._advance(PipelineState.ARGS_PARSED)

        try:
            self._execute(resolution.config)
        except UbiMkvolError as exc:
            return self._fail(exc)
        return self._result

    def _execute(self, config: VolumeRequestConfig) -> None:
        # Step failures are translated where they happen; a BackendError
        # reaching this point comes from opening the device manager.
        try:
            with self.backend.session() as manager:
                self._create(config, manager)
        except BackendError as exc:
            raise DeviceQueryFailed(f"cannot open UBI device manager: {exc}") from exc

    def _create(self, config: VolumeRequestConfig, manager: VolumeManagerBackend) -> None:
        sanity_check(config, manager)
        self._advance(PipelineState.VALIDATED)

        device_info = query_device(config, manager)
        config = resolve_size(config, device_info)
        if config.use_max_available:
            self._result.messages.append(
                f"Set volume size to {config.size_bytes} bytes "
                f"({humanize.naturalsize(config.size_bytes, binary=True)})"
            )
        request = build_request(config)
        self._result.config = config
        self._result.request = request
        self._advance(PipelineState.SIZE_RESOLVED)

        vol_id = issue_request(manager, config.node, request)
        self._result.volume_id = vol_id
        self._advance(PipelineState.CREATED)

        info = query_created_volume(manager, device_info.dev_num, vol_id)
        self._result.volume_info = info
        self._result.messages.append(format_report(info, request.volume_type))
        self._advance(PipelineState.REPORTED)
