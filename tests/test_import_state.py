import pytest

from entity_import.api.schemas.shared import ImportFormat, ImportSubject
from entity_import.domain.pipeline.errors import InvalidTransition
from entity_import.domain.pipeline.state import (
    Advance,
    Cancel,
    CommitSucceeded,
    EntityImportState,
    EntityStage,
    SelectFile,
    SelectSubject,
    TemplateImportState,
    TemplateStage,
    initial_state,
    is_ready,
    transition,
)


def _walk(state, *events):
    for event in events:
        state = transition(state, event)
    return state


def test_initial_state_is_entities_upload():
    state = initial_state()

    assert isinstance(state, EntityImportState)
    assert state.stage is EntityStage.UPLOAD
    assert state.format is None
    assert state.is_subject_locked is False
    assert state.active_step == 0


def test_entities_path_visits_every_stage():
    state = _walk(initial_state(), SelectFile(ImportFormat.CSV))
    seen = [state.stage]
    for _ in range(3):
        state = transition(state, Advance())
        seen.append(state.stage)

    assert seen == [EntityStage.UPLOAD, EntityStage.DETAILS, EntityStage.MAPPING, EntityStage.REVIEW]
    assert state.active_step == 3
    assert state.steps[state.active_step] == "Review"
    assert state.format is ImportFormat.CSV


def test_template_path_goes_straight_to_review():
    state = _walk(
        initial_state(),
        SelectSubject(ImportSubject.TEMPLATE),
        SelectFile(ImportFormat.JSON),
        Advance(),
    )

    assert isinstance(state, TemplateImportState)
    assert state.stage is TemplateStage.REVIEW
    assert state.steps == ("Upload File", "Review")


def test_review_cannot_advance_further():
    state = _walk(initial_state(), SelectFile(ImportFormat.JSON), Advance(), Advance(), Advance())

    with pytest.raises(InvalidTransition):
        transition(state, Advance())


def test_advance_requires_a_staged_file():
    with pytest.raises(InvalidTransition):
        transition(initial_state(), Advance())


def test_template_subject_refuses_csv():
    state = transition(initial_state(), SelectSubject(ImportSubject.TEMPLATE))

    with pytest.raises(InvalidTransition):
        transition(state, SelectFile(ImportFormat.CSV))


def test_format_is_fixed_once_selected():
    state = transition(initial_state(), SelectFile(ImportFormat.CSV))

    with pytest.raises(InvalidTransition):
        transition(state, SelectFile(ImportFormat.JSON))


def test_subject_locked_after_leaving_upload():
    state = _walk(initial_state(), SelectFile(ImportFormat.CSV), Advance())

    assert state.is_subject_locked is True
    with pytest.raises(InvalidTransition):
        transition(state, SelectSubject(ImportSubject.TEMPLATE))


def test_switching_subject_discards_staged_format():
    state = _walk(initial_state(), SelectFile(ImportFormat.CSV), SelectSubject(ImportSubject.TEMPLATE))

    assert isinstance(state, TemplateImportState)
    assert state.format is None


@pytest.mark.parametrize("advances", [0, 1, 2, 3])
def test_cancel_from_any_stage_returns_to_initial(advances):
    state = transition(initial_state(), SelectFile(ImportFormat.CSV))
    for _ in range(advances):
        state = transition(state, Advance())

    assert transition(state, Cancel()) == initial_state()


def test_cancel_resets_template_subject_to_entities():
    state = _walk(initial_state(), SelectSubject(ImportSubject.TEMPLATE), SelectFile(ImportFormat.JSON), Advance())

    assert transition(state, Cancel()) == EntityImportState()


def test_commit_only_from_review():
    details = _walk(initial_state(), SelectFile(ImportFormat.CSV), Advance())
    review = _walk(details, Advance(), Advance())

    with pytest.raises(InvalidTransition):
        transition(details, CommitSucceeded())
    assert transition(review, CommitSucceeded()) == initial_state()


def test_details_readiness_depends_on_format():
    csv_details = _walk(initial_state(), SelectFile(ImportFormat.CSV), Advance())
    json_details = _walk(initial_state(), SelectFile(ImportFormat.JSON), Advance())

    assert is_ready(json_details, file_staged=True) is True
    assert is_ready(csv_details, file_staged=True, name_field="") is False
    assert is_ready(csv_details, file_staged=True, name_field="Name") is True


def test_upload_readiness_needs_a_file():
    assert is_ready(initial_state(), file_staged=False) is False
    staged = transition(initial_state(), SelectFile(ImportFormat.CSV))
    assert is_ready(staged, file_staged=True) is True


def test_mapping_readiness_still_needs_name_column_for_csv():
    csv_mapping = _walk(initial_state(), SelectFile(ImportFormat.CSV), Advance(), Advance())
    json_mapping = _walk(initial_state(), SelectFile(ImportFormat.JSON), Advance(), Advance())

    assert is_ready(csv_mapping, file_staged=True, name_field="") is False
    assert is_ready(csv_mapping, file_staged=True, name_field="Name") is True
    assert is_ready(json_mapping, file_staged=True) is True
