from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, replace
from enum import Enum

from magic_editor.application.providers import (
    ImageEditProvider,
    OutpaintProvider,
    TextProvider,
    VisionProvider,
)
from magic_editor.application.use_cases.crop_image import CropImageUseCase, ZoomUseCase
from magic_editor.application.use_cases.expand_image import ExpandImageUseCase
from magic_editor.application.use_cases.navigate_history import HistoryAction, NavigateHistoryUseCase
from magic_editor.application.use_cases.process_image import (
    EditWithPromptUseCase,
    EnhanceImageUseCase,
    RemoveBackgroundUseCase,
    SuggestPromptUseCase,
)
from magic_editor.application.use_cases.provider_results import ProgressCallback
from magic_editor.application.use_cases.upload_image import (
    RejectedUpload,
    UploadedFile,
    UploadImagesUseCase,
)
from magic_editor.domain.entities.geometry import Dimensions, PixelRect
from magic_editor.domain.entities.image import ImageAsset
from magic_editor.domain.entities.session import Session
from magic_editor.domain.entities.workspace import Workspace
from magic_editor.domain.errors import (
    GeometryError,
    ProviderError,
    StaleSessionError,
    StateContractViolation,
    ValidationError,
)
from magic_editor.domain.services.geometry_service import GeometryService
from magic_editor.domain.services.session_manager import SessionManager, SessionUpdater

logger = logging.getLogger(__name__)

# Errors that end an operation with a message for the user instead of propagating
USER_FACING_ERRORS = (ValidationError, ProviderError, GeometryError)


class OperationState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    CALLING = "calling"
    COMMITTING = "committing"
    FAILED = "failed"


_BUSY_STATES = (OperationState.VALIDATING, OperationState.CALLING, OperationState.COMMITTING)


@dataclass(frozen=True)
class OperationStatus:
    state: OperationState = OperationState.IDLE
    operation: str | None = None
    step: int = 0
    total_steps: int = 0
    message: str = ""
    last_error: str | None = None

    @property
    def busy(self) -> bool:
        return self.state in _BUSY_STATES


@dataclass(frozen=True)
class OperationOutcome:
    ok: bool
    error: str | None = None
    session: Session | None = None


class IntakeChoice(str, Enum):
    PAD = "pad"
    AI_EXPAND = "ai_expand"
    PROCEED = "proceed"


@dataclass(frozen=True)
class PendingIntake:
    """An upload with an extreme aspect ratio waiting for the user's decision."""

    id: str
    asset: ImageAsset
    ratio_label: str
    size: Dimensions
    suggested_ratio: str

    @property
    def filename(self) -> str | None:
        return self.asset.filename


@dataclass(frozen=True)
class UploadReport:
    sessions: tuple[Session, ...] = ()
    pending: tuple[PendingIntake, ...] = ()
    rejected: tuple[RejectedUpload, ...] = ()

    @property
    def error(self) -> str | None:
        if not self.rejected:
            return None
        return "; ".join(r.reason for r in self.rejected)


# Runs the provider/geometry part of an operation and returns how to update the session
Work = Callable[[Session, ProgressCallback], Awaitable[SessionUpdater]]


class EditOrchestrator:
    """Sequences every user operation against the active session.

    One operation runs at a time. Each captures the session's revision when it
    starts and commits only if the session is unchanged; provider, geometry and
    validation failures end up in ``status.last_error`` and leave the session as
    it was.
    """

    def __init__(
        self,
        geometry: GeometryService,
        vision: VisionProvider,
        translator: TextProvider,
        editor: ImageEditProvider,
        outpainter: OutpaintProvider,
        sessions: SessionManager | None = None,
        *,
        conform_expanded_output: bool = True,
    ) -> None:
        self.geometry = geometry
        self.sessions = sessions or SessionManager()
        self._status = OperationStatus()
        self._pending: dict[str, PendingIntake] = {}

        self._upload = UploadImagesUseCase(geometry)
        self._edit = EditWithPromptUseCase(editor, translator)
        self._suggest = SuggestPromptUseCase(vision)
        self._enhance = EnhanceImageUseCase(editor)
        self._remove_background = RemoveBackgroundUseCase(editor)
        self._expand = ExpandImageUseCase(vision, outpainter, geometry, conform_expanded_output)
        self._crop = CropImageUseCase(geometry)
        self._zoom = ZoomUseCase(geometry)
        self._history = NavigateHistoryUseCase(self.sessions)

    # --------- readers ---------
    @property
    def status(self) -> OperationStatus:
        return self._status

    @property
    def busy(self) -> bool:
        return self._status.busy

    @property
    def last_error(self) -> str | None:
        return self._status.last_error

    @property
    def workspace(self) -> Workspace:
        return self.sessions.workspace

    @property
    def pending_intakes(self) -> tuple[PendingIntake, ...]:
        return tuple(self._pending.values())

    # --------- operation runner ---------
    def _target(self, session_id: str | None) -> Session:
        if session_id is not None:
            return self.sessions.require(session_id)
        session = self.sessions.active_session
        if session is None:
            raise ValidationError("Upload an image first.")
        return session

    def _commit(self, session_id: str, revision: int, updater: SessionUpdater) -> Session:
        def checked(current: Session) -> Session:
            if current.revision != revision:
                raise StaleSessionError(
                    f"Session {session_id} changed while the operation was running"
                )
            return updater(current)

        return self.sessions.update_session(session_id, checked)

    def _progress(self, step: int, total: int, message: str) -> None:
        self._status = replace(
            self._status,
            state=OperationState.CALLING,
            step=step,
            total_steps=total,
            message=message,
        )
        logger.info("%s step %d/%d: %s", self._status.operation, step, total, message)

    async def _run(
        self, operation: str, work: Work, *, session_id: str | None = None, total_steps: int = 1
    ) -> OperationOutcome:
        if self.busy:
            message = f"Wait for {self._status.operation} to finish before starting {operation}."
            logger.info("Rejected %s: %s is running", operation, self._status.operation)
            return OperationOutcome(False, message, self.sessions.active_session)

        self._status = OperationStatus(
            OperationState.VALIDATING, operation, 0, total_steps, "Validating"
        )
        logger.info("Starting %s", operation)
        target_id = session_id
        try:
            session = self._target(session_id)
            target_id = session.id
            updater = await work(session, self._progress)
            self._status = replace(self._status, state=OperationState.COMMITTING, message="Saving")
            committed = self._commit(session.id, session.revision, updater)
        except USER_FACING_ERRORS as exc:
            message = str(exc)
            logger.warning("%s failed: %s", operation, message)
            self._status = OperationStatus(OperationState.FAILED, operation, last_error=message)
            current = self.sessions.get(target_id) if target_id else None
            return OperationOutcome(False, message, current)
        except BaseException:
            self._status = OperationStatus()
            raise

        self._status = OperationStatus()
        logger.info("Finished %s", operation)
        return OperationOutcome(True, None, committed)

    # --------- AI operations ---------
    async def edit_with_prompt(
        self, prompt: str | None = None, *, session_id: str | None = None
    ) -> OperationOutcome:
        """Edit the current image with ``prompt`` (or the session's stored prompt)."""

        async def work(session: Session, progress: ProgressCallback) -> SessionUpdater:
            text = session.prompt if prompt is None else prompt
            asset = await self._edit.execute(session.current_asset(), text, progress)
            if prompt is None:
                return lambda s: s.commit(asset)
            return lambda s: s.commit(asset).with_prompt(prompt)

        return await self._run("edit", work, session_id=session_id, total_steps=2)

    async def suggest_prompt(self, *, session_id: str | None = None) -> OperationOutcome:
        async def work(session: Session, progress: ProgressCallback) -> SessionUpdater:
            text = await self._suggest.execute(session.current_asset(), progress)
            return lambda s: s.with_prompt(text)

        return await self._run("suggest_prompt", work, session_id=session_id)

    async def enhance(self, *, session_id: str | None = None) -> OperationOutcome:
        async def work(session: Session, progress: ProgressCallback) -> SessionUpdater:
            asset = await self._enhance.execute(session.current_asset(), progress)
            return lambda s: s.commit(asset)

        return await self._run("enhance", work, session_id=session_id)

    async def remove_background(self, *, session_id: str | None = None) -> OperationOutcome:
        async def work(session: Session, progress: ProgressCallback) -> SessionUpdater:
            asset = await self._remove_background.execute(session.current_asset(), progress)
            return lambda s: s.commit(asset)

        return await self._run("remove_background", work, session_id=session_id)

    async def expand(self, ratio: str, *, session_id: str | None = None) -> OperationOutcome:
        async def work(session: Session, progress: ProgressCallback) -> SessionUpdater:
            asset = await self._expand.execute(session.current_asset(), ratio, progress)
            return lambda s: s.commit(asset)

        return await self._run("expand", work, session_id=session_id, total_steps=2)

    # --------- local operations ---------
    async def crop(
        self,
        rect: PixelRect,
        display_size: Dimensions | None = None,
        device_pixel_ratio: float = 1.0,
        *,
        session_id: str | None = None,
        operation: str = "crop",
    ) -> OperationOutcome:
        async def work(session: Session, progress: ProgressCallback) -> SessionUpdater:
            progress(1, 1, "Cropping")
            asset = self._crop.execute(
                session.current_asset(), rect, display_size, device_pixel_ratio
            )
            return lambda s: s.commit(asset)

        return await self._run(operation, work, session_id=session_id)

    async def zoom(
        self,
        rect: PixelRect,
        display_size: Dimensions | None = None,
        *,
        session_id: str | None = None,
    ) -> OperationOutcome:
        """Ask the viewer to zoom to ``rect``; history is not touched."""

        async def work(session: Session, progress: ProgressCallback) -> SessionUpdater:
            viewport = self._zoom.execute(session.current_asset(), rect, display_size)
            return lambda s: s.with_viewport(viewport)

        return await self._run("zoom", work, session_id=session_id)

    async def zoom_and_crop(
        self,
        rect: PixelRect,
        display_size: Dimensions | None = None,
        device_pixel_ratio: float = 1.0,
        *,
        session_id: str | None = None,
    ) -> OperationOutcome:
        return await self.crop(
            rect,
            display_size,
            device_pixel_ratio,
            session_id=session_id,
            operation="zoom_and_crop",
        )

    # --------- intake ---------
    async def upload(self, files: Iterable[UploadedFile]) -> UploadReport:
        """Normalize uploads; supported ones become sessions, extreme ratios wait as intakes."""
        batch = self._upload.execute(files)
        created = self.sessions.add_sessions(n.asset for n in batch.supported)

        pending = []
        for normalized in batch.unsupported:
            intake = PendingIntake(
                id=f"intake-{uuid.uuid4().hex}",
                asset=normalized.asset,
                ratio_label=normalized.ratio_label,
                size=normalized.size,
                suggested_ratio=self.geometry.nearest_supported_ratio(
                    normalized.size.width, normalized.size.height
                ),
            )
            self._pending[intake.id] = intake
            pending.append(intake)
            logger.info(
                "Upload %s has unsupported ratio %s, awaiting decision",
                normalized.asset.filename or intake.id,
                normalized.ratio_label,
            )

        report = UploadReport(tuple(created), tuple(pending), tuple(batch.rejected))
        if not self.busy:
            if report.error:
                self._status = OperationStatus(
                    OperationState.FAILED, "upload", last_error=report.error
                )
            else:
                self._status = OperationStatus()
        return report

    def get_intake(self, intake_id: str) -> PendingIntake:
        intake = self._pending.get(intake_id)
        if intake is None:
            raise StateContractViolation(f"Unknown or already resolved intake {intake_id}")
        return intake

    async def resolve_intake(
        self, intake_id: str, choice: IntakeChoice, expand_ratio: str | None = None
    ) -> OperationOutcome:
        """Apply the user's choice for a pending upload; each intake resolves once."""
        intake = self.get_intake(intake_id)

        if choice is IntakeChoice.PAD:
            try:
                padded = self.geometry.pad_to_supported_ratio(intake.asset)
            except GeometryError as exc:
                logger.warning("Padding %s failed: %s", intake.id, exc)
                self._status = OperationStatus(OperationState.FAILED, "pad", last_error=str(exc))
                return OperationOutcome(False, str(exc), None)
            del self._pending[intake_id]
            session = self.sessions.add_sessions([padded])[0]
            return OperationOutcome(True, None, session)

        if choice is IntakeChoice.PROCEED:
            del self._pending[intake_id]
            session = self.sessions.add_sessions([intake.asset])[0]
            return OperationOutcome(True, None, session)

        if self.busy:
            message = f"Wait for {self._status.operation} to finish before expanding."
            return OperationOutcome(False, message, self.sessions.active_session)
        ratio = expand_ratio or intake.suggested_ratio
        del self._pending[intake_id]
        session = self.sessions.add_sessions([intake.asset], activate=True)[0]
        return await self.expand(ratio, session_id=session.id)

    # --------- history and session commands ---------
    def _command_target(self, session_id: str | None) -> str | None:
        return session_id if session_id is not None else self.sessions.active_session_id

    def _navigate(self, action: HistoryAction, session_id: str | None) -> Session | None:
        target = self._command_target(session_id)
        if target is None:
            return None
        return self._history.execute(target, action)

    def undo(self, session_id: str | None = None) -> Session | None:
        return self._navigate(HistoryAction.UNDO, session_id)

    def redo(self, session_id: str | None = None) -> Session | None:
        return self._navigate(HistoryAction.REDO, session_id)

    def reset(self, session_id: str | None = None) -> Session | None:
        return self._navigate(HistoryAction.RESET, session_id)

    def set_prompt(self, prompt: str, session_id: str | None = None) -> Session | None:
        target = self._command_target(session_id)
        if target is None:
            return None
        return self.sessions.update_session(target, lambda s: s.with_prompt(prompt))

    def clear_viewport(self, session_id: str | None = None) -> Session | None:
        target = self._command_target(session_id)
        if target is None:
            return None
        return self.sessions.update_session(target, lambda s: s.with_viewport(None))

    def switch_active(self, session_id: str) -> Session | None:
        self.sessions.switch_active(session_id)
        return self.sessions.active_session

    def delete_session(self, session_id: str) -> bool:
        return self.sessions.delete_session(session_id)

    def dismiss_error(self) -> None:
        if self._status.state is OperationState.FAILED:
            self._status = OperationStatus()
        else:
            self._status = replace(self._status, last_error=None)
