# rd_core/tests/test_workflow_rules.py
"""
Pure workflow rules: no database.
"""

import pytest

from rd_core.workflows import (
    SAMPLE_TRANSITIONS,
    WORKFLOW_KINDS,
    allowed_for_roles,
    allowed_next_states,
    allowed_transitions,
    is_terminal,
    normalize_role,
    normalize_state,
    required_roles,
    sample_stage_progress,
    validate_transition,
    workflow_definition,
)


def test_sample_happy_path_is_legal():
    path = [
        "Draft",
        "Prepared",
        "Lab",
        "LabDone",
        "Pilot",
        "PilotDone",
        "ReadyForHandoff",
        "HandedOff",
        "Testing",
        "Approved",
    ]
    for old, new in zip(path, path[1:]):
        validate_transition("sample", old, new)


@pytest.mark.parametrize(
    "old,new",
    [
        ("Draft", "Lab"),
        ("Prepared", "Draft"),
        ("HandedOff", "Archived"),
        ("Testing", "Archived"),
        ("Approved", "Archived"),
        ("Archived", "Draft"),
    ],
)
def test_illegal_sample_edges_raise(old, new):
    with pytest.raises(ValueError, match="Invalid sample status transition"):
        validate_transition("sample", old, new)


def test_unknown_state_and_kind_raise():
    with pytest.raises(ValueError, match="Unknown sample status"):
        validate_transition("sample", "Draft", "Cooked")
    with pytest.raises(ValueError, match="Unknown workflow kind"):
        validate_transition("invoice", "Draft", "Prepared")


def test_same_state_is_a_noop():
    validate_transition("sample", "Lab", "Lab")


def test_state_and_role_normalization():
    assert normalize_state("sample", "labdone") == "LabDone"
    assert normalize_state("request", "in_progress") == "IN_PROGRESS"
    assert normalize_state("sample", " Nope ") == "Nope"
    assert normalize_role("rd_dev") == "RD_DEV"
    assert normalize_role("sales manager") == "SALES_MANAGER"
    assert normalize_role(None) == "READONLY"


def test_terminal_states():
    assert is_terminal("sample", "Approved")
    assert is_terminal("sample", "Archived")
    assert not is_terminal("sample", "Rejected")
    assert is_terminal("recipe", "Archived")
    assert is_terminal("request", "CANCELLED")
    assert allowed_next_states("sample", "Approved") == []


def test_every_sample_state_has_a_transition_entry():
    assert set(SAMPLE_TRANSITIONS) == set(workflow_definition("sample")["statuses"])


def test_roles_per_step():
    assert required_roles("sample", "Draft", "Prepared") == {"RD_DEV", "RD_MANAGER", "ADMIN"}
    assert required_roles("sample", "HandedOff", "Testing") == {"SALES_MANAGER", "ADMIN"}
    assert required_roles("sample", "Rejected", "Archived") == {"RD_MANAGER", "ADMIN"}


def test_role_aware_transitions():
    assert allowed_transitions("sample", "PilotDone", "RD_DEV") == ["Archived", "HandedOff", "ReadyForHandoff"]
    assert allowed_transitions("sample", "PilotDone", "SALES_MANAGER") == []
    assert allowed_transitions("sample", "Testing", "sales_manager") == ["Approved", "Rejected"]
    assert allowed_transitions("sample", "Rejected", "RD_DEV") == []
    assert allowed_transitions("sample", "Draft", "READONLY") == []


def test_allowed_for_roles_is_the_union():
    assert allowed_for_roles("sample", "Rejected", {"RD_DEV", "RD_MANAGER"}) == ["Archived"]
    assert allowed_for_roles("request", "SENT_FOR_TEST", {"SALES_MANAGER"}) == [
        "APPROVED_FOR_PRODUCTION",
        "IN_PROGRESS",
        "REJECTED_BY_CLIENT",
    ]
    assert allowed_for_roles("request", "PENDING", set()) == []


def test_definition_is_json_shaped():
    for kind in WORKFLOW_KINDS:
        definition = workflow_definition(kind)
        assert definition["kind"] == kind
        assert isinstance(definition["statuses"], list)
        assert all(isinstance(v, list) for v in definition["transitions"].values())

    assert workflow_definition("sample")["terminal_states"] == ["Approved", "Archived"]
    assert workflow_definition("recipe")["transitions"]["Draft"] == ["Archived", "Locked"]


def test_stage_progress():
    assert sample_stage_progress("Draft") == {
        "prepared": False,
        "lab": False,
        "pilot": False,
        "testing": False,
        "approved": False,
    }
    assert sample_stage_progress("LabDone") == {
        "prepared": True,
        "lab": True,
        "pilot": False,
        "testing": False,
        "approved": False,
    }
    assert sample_stage_progress("Rejected")["testing"] is True
    assert sample_stage_progress("Rejected")["approved"] is False
    assert sample_stage_progress("Approved")["approved"] is True
