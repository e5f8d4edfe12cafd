import asyncio

import pytest

from magic_editor.application.orchestrator import IntakeChoice, OperationState
from magic_editor.application.use_cases.upload_image import UploadedFile
from magic_editor.domain.entities.geometry import Dimensions, PixelRect
from magic_editor.domain.entities.provider_result import ProviderFailure, TextResult
from magic_editor.domain.errors import StaleSessionError, StateContractViolation


def upload(orchestrator, run, *files):
    return run(orchestrator.upload(list(files)))


def png_file(make_image, w, h, name="photo.png"):
    return UploadedFile(filename=name, data=make_image(w, h), content_type="image/png")


@pytest.fixture()
def session(orchestrator, run, make_image):
    report = upload(orchestrator, run, png_file(make_image, 800, 450))
    return report.sessions[0]


# --------- intake ---------
def test_upload_opens_supported_images(orchestrator, run, make_image):
    report = upload(
        orchestrator,
        run,
        png_file(make_image, 800, 450, "a.png"),
        png_file(make_image, 300, 400, "b.png"),
    )
    assert len(report.sessions) == 2
    assert report.pending == ()
    assert orchestrator.sessions.active_session_id == report.sessions[0].id
    assert report.sessions[0].source_filename == "a.png"


def test_upload_holds_extreme_ratios_for_a_decision(orchestrator, run, make_image):
    report = upload(orchestrator, run, png_file(make_image, 2000, 400, "pano.png"))
    assert report.sessions == ()
    (intake,) = report.pending
    assert intake.ratio_label == "1536:307"
    assert intake.suggested_ratio == "3:2"
    assert intake.size == Dimensions(1536, 307)
    assert orchestrator.pending_intakes == (intake,)
    assert len(orchestrator.sessions.sessions) == 0


def test_upload_reports_rejected_files(orchestrator, run, make_image):
    report = upload(
        orchestrator,
        run,
        UploadedFile("notes.txt", b"hello", "text/plain"),
        png_file(make_image, 100, 100),
    )
    assert len(report.sessions) == 1
    assert [r.filename for r in report.rejected] == ["notes.txt"]
    assert orchestrator.last_error == report.error


def test_resolve_pad_opens_padded_session(orchestrator, run, make_image, image_size):
    (intake,) = upload(orchestrator, run, png_file(make_image, 2000, 400, "pano.png")).pending
    outcome = run(orchestrator.resolve_intake(intake.id, IntakeChoice.PAD))

    assert outcome.ok
    assert image_size(outcome.session.original) == (1536, 1024)
    assert outcome.session.source_filename == "pano.png"
    assert orchestrator.pending_intakes == ()
    with pytest.raises(StateContractViolation):
        run(orchestrator.resolve_intake(intake.id, IntakeChoice.PAD))


def test_resolve_proceed_keeps_the_upload(orchestrator, run, make_image):
    raw = make_image(1500, 300)
    (intake,) = upload(orchestrator, run, UploadedFile("pano.png", raw, "image/png")).pending
    outcome = run(orchestrator.resolve_intake(intake.id, IntakeChoice.PROCEED))
    assert outcome.ok
    assert outcome.session.original.raw_bytes == raw
    assert outcome.session.history == ()


def test_large_upload_then_edit(orchestrator, providers, run, make_image, image_size):
    report = upload(orchestrator, run, png_file(make_image, 4000, 3000, "big.png"))
    (session,) = report.sessions
    assert image_size(session.original) == (1536, 1152)

    outcome = run(orchestrator.edit_with_prompt("add a rainbow"))

    assert outcome.ok
    edited = outcome.session
    assert len(edited.history) == 1
    assert edited.history_index == 0
    assert edited.viewport_request is None
    assert edited.current_asset() is edited.history[0]
    assert edited.original == session.original
    assert providers.editor.calls[0][0] == session.original


def test_resolve_ai_expand_activates_and_expands(orchestrator, providers, run, make_image, image_size):
    upload(orchestrator, run, png_file(make_image, 800, 450, "first.png"))
    (intake,) = upload(orchestrator, run, png_file(make_image, 2000, 400)).pending

    outcome = run(orchestrator.resolve_intake(intake.id, IntakeChoice.AI_EXPAND))

    assert outcome.ok
    assert orchestrator.sessions.active_session_id == outcome.session.id
    assert len(outcome.session.history) == 1
    _, width, height, instruction = providers.outpainter.calls[0]
    assert (width, height) == (1792, 1195)
    assert instruction.startswith("A quiet lake at golden hour. Seamlessly extend")
    assert image_size(outcome.session.current_asset()) == (1792, 1195)


# --------- AI operations ---------
def test_edit_translates_then_commits(orchestrator, providers, run, session):
    providers.translator.result = TextResult('"make the sky pink"', "fake")
    outcome = run(orchestrator.edit_with_prompt("gör himlen rosa"))

    assert outcome.ok
    assert providers.editor.calls[0][1] == "make the sky pink"
    assert outcome.session.history_index == 0
    assert outcome.session.prompt == "gör himlen rosa"
    assert orchestrator.status.state is OperationState.IDLE


def test_edit_uses_typed_prompt_when_translation_fails(orchestrator, providers, run, session):
    providers.translator.result = ProviderFailure("quota exceeded", "fake")
    run(orchestrator.edit_with_prompt("brighter"))
    assert providers.editor.calls[0][1] == "brighter"


def test_edit_without_prompt_fails_before_provider_call(orchestrator, providers, run, session):
    outcome = run(orchestrator.edit_with_prompt("   "))
    assert not outcome.ok
    assert providers.editor.calls == []
    assert outcome.session.history == ()
    assert orchestrator.status.state is OperationState.FAILED
    assert orchestrator.last_error == outcome.error


def test_text_instead_of_image_is_a_failure(orchestrator, providers, run, session):
    providers.editor.result = TextResult("I cannot edit this image", "fake")
    outcome = run(orchestrator.enhance())
    assert not outcome.ok
    assert "description instead of an image" in outcome.error
    assert outcome.session.history == ()


def test_provider_failure_leaves_history_and_prompt(orchestrator, providers, run, session):
    orchestrator.set_prompt("keep me")
    providers.editor.result = ProviderFailure("blocked", "fake", blocked=True)
    outcome = run(orchestrator.edit_with_prompt())
    assert not outcome.ok
    current = orchestrator.sessions.active_session
    assert current.history == ()
    assert current.prompt == "keep me"


def test_remove_background_forces_png(orchestrator, providers, run, session):
    providers.editor.fmt = "JPEG"
    outcome = run(orchestrator.remove_background())
    assert outcome.ok
    assert outcome.session.current_asset().mime_type == "image/png"


def test_suggest_prompt_sets_prompt_without_commit(orchestrator, run, session):
    outcome = run(orchestrator.suggest_prompt())
    assert outcome.ok
    assert outcome.session.prompt == "A quiet lake at golden hour"
    assert outcome.session.history == ()


def test_expand_conforms_mismatched_output(orchestrator, providers, run, session, image_size):
    providers.outpainter.size = (1000, 700)
    outcome = run(orchestrator.expand("16:9"))
    assert outcome.ok
    assert image_size(outcome.session.current_asset()) == (1792, 1008)


def test_expand_with_bad_ratio_fails_fast(orchestrator, providers, run, session):
    outcome = run(orchestrator.expand("sideways"))
    assert not outcome.ok
    assert providers.vision.calls == []
    assert providers.outpainter.calls == []


def test_operations_need_an_image(orchestrator, run):
    outcome = run(orchestrator.enhance())
    assert not outcome.ok
    assert outcome.error == "Upload an image first."


# --------- local operations ---------
def test_crop_commits_native_resolution(orchestrator, run, session, image_size):
    outcome = run(orchestrator.crop(PixelRect(0, 0, 200, 100), Dimensions(400, 225)))
    assert outcome.ok
    assert image_size(outcome.session.current_asset()) == (400, 200)


def test_zoom_sets_viewport_only(orchestrator, run, session):
    outcome = run(orchestrator.zoom(PixelRect(10, 10, 100, 50)))
    assert outcome.ok
    assert outcome.session.viewport_request == PixelRect(10, 10, 100, 50)
    assert outcome.session.history == ()
    assert outcome.session.revision == session.revision


def test_zoom_and_crop_commits_and_clears_viewport(orchestrator, run, session, image_size):
    run(orchestrator.zoom(PixelRect(10, 10, 100, 50)))
    outcome = run(orchestrator.zoom_and_crop(PixelRect(0, 0, 80, 40)))
    assert outcome.ok
    assert outcome.session.viewport_request is None
    assert image_size(outcome.session.current_asset()) == (80, 40)


def test_empty_crop_is_reported(orchestrator, run, session):
    outcome = run(orchestrator.crop(PixelRect(0, 0, 0, 10)))
    assert not outcome.ok
    assert orchestrator.last_error


# --------- history commands ---------
def test_undo_redo_reset(orchestrator, run, session):
    run(orchestrator.enhance())
    run(orchestrator.enhance())
    assert orchestrator.undo().history_index == 0
    assert orchestrator.redo().history_index == 1

    orchestrator.undo()
    outcome = run(orchestrator.remove_background())
    assert len(outcome.session.history) == 2
    assert not outcome.session.can_redo

    reset = orchestrator.reset()
    assert reset.history == ()


def test_delete_session_moves_active_left(orchestrator, run, make_image):
    report = upload(
        orchestrator,
        run,
        png_file(make_image, 100, 100, "a.png"),
        png_file(make_image, 100, 100, "b.png"),
    )
    first, second = report.sessions
    orchestrator.switch_active(second.id)
    assert orchestrator.delete_session(second.id)
    assert orchestrator.sessions.active_session_id == first.id
    assert not orchestrator.delete_session("missing")


def test_dismiss_error(orchestrator, run):
    run(orchestrator.enhance())
    assert orchestrator.last_error
    orchestrator.dismiss_error()
    assert orchestrator.last_error is None
    assert orchestrator.status.state is OperationState.IDLE


# --------- concurrency ---------
def test_second_operation_is_rejected_while_busy(orchestrator, providers, session):
    async def scenario():
        providers.editor.gate = asyncio.Event()
        first = asyncio.create_task(orchestrator.enhance())
        await asyncio.sleep(0)
        assert orchestrator.busy

        second = await orchestrator.remove_background()
        assert not second.ok
        assert "Wait for enhance" in second.error

        providers.editor.gate.set()
        return await first

    outcome = asyncio.run(scenario())
    assert outcome.ok
    assert len(outcome.session.history) == 1
    assert len(providers.editor.calls) == 1


def test_commit_against_changed_session_is_stale(orchestrator, providers, run, session):
    run(orchestrator.enhance())

    async def scenario():
        providers.editor.gate = asyncio.Event()
        task = asyncio.create_task(orchestrator.enhance())
        await asyncio.sleep(0)
        orchestrator.undo()
        providers.editor.gate.set()
        await task

    with pytest.raises(StaleSessionError):
        asyncio.run(scenario())
    assert not orchestrator.busy
    assert orchestrator.sessions.active_session.history_index == -1
