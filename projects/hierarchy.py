"""Human-readable hierarchy IDs for requirements, epics, FRs, sprints and tasks.

Format: ``{ProjectCode}-{CRCode}-{EpicCode}-{FRCode}-{NN}``, e.g.
``PTES-RAU-EAU-FRL-01``. Each code segment is the first letters of the
entity name; segments for missing ancestors are left out. IDs are a pure
function of their arguments.

A name with no letters yields an empty segment, so ``"2024"`` as a
requirement name gives ``PTES--01``.
"""
from __future__ import annotations

import re

_NON_ALPHA = re.compile(r"[^a-zA-Z]")
_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")

PROJECT_CODE_LENGTH = 2
FALLBACK_PROJECT_CODE_LENGTH = 4
SEGMENT_LENGTH = 3


def code_from_name(name: str, length: int) -> str:
    """First ``length`` ASCII letters of ``name``, uppercased."""
    if not name:
        return ""
    return _NON_ALPHA.sub("", name)[:length].upper()


def pad_sequence(sequence: int) -> str:
    return str(sequence).rjust(2, "0")


def project_code(project_name: str, explicit_code: str = "") -> str:
    """Code shown for a project: its explicit code, else two letters of its name."""
    return explicit_code or code_from_name(project_name, PROJECT_CODE_LENGTH)


def _project_segment(code: str, project_name: str) -> str:
    return code or code_from_name(project_name, FALLBACK_PROJECT_CODE_LENGTH)


def _join(*segments: str) -> str:
    return "-".join(segments)


def requirement_id(code: str, project_name: str, requirement_name: str, sequence: int) -> str:
    return _join(
        _project_segment(code, project_name),
        code_from_name(requirement_name, SEGMENT_LENGTH),
        pad_sequence(sequence),
    )


def epic_id(
    code: str,
    project_name: str,
    requirement_name: str,
    epic_name: str,
    sequence: int,
) -> str:
    return _join(
        _project_segment(code, project_name),
        code_from_name(requirement_name, SEGMENT_LENGTH),
        code_from_name(epic_name, SEGMENT_LENGTH),
        pad_sequence(sequence),
    )


def epic_id_without_requirement(code: str, project_name: str, epic_name: str, sequence: int) -> str:
    return _join(
        _project_segment(code, project_name),
        code_from_name(epic_name, SEGMENT_LENGTH),
        pad_sequence(sequence),
    )


def fr_id(
    code: str,
    project_name: str,
    requirement_name: str,
    epic_name: str,
    fr_name: str,
    sequence: int,
) -> str:
    return _join(
        _project_segment(code, project_name),
        code_from_name(requirement_name, SEGMENT_LENGTH),
        code_from_name(epic_name, SEGMENT_LENGTH),
        code_from_name(fr_name, SEGMENT_LENGTH),
        pad_sequence(sequence),
    )


def fr_id_with_epic_only(code: str, project_name: str, epic_name: str, fr_name: str, sequence: int) -> str:
    return _join(
        _project_segment(code, project_name),
        code_from_name(epic_name, SEGMENT_LENGTH),
        code_from_name(fr_name, SEGMENT_LENGTH),
        pad_sequence(sequence),
    )


def fr_id_standalone(code: str, project_name: str, fr_name: str, sequence: int) -> str:
    return _join(
        _project_segment(code, project_name),
        code_from_name(fr_name, SEGMENT_LENGTH),
        pad_sequence(sequence),
    )


def _task_segment(task_name: str, sequence: int) -> str:
    # Tasks without letters in their title reuse the sequence as their code.
    return code_from_name(task_name, SEGMENT_LENGTH) or pad_sequence(sequence)


def task_id(fr_hierarchy_id: str, task_name: str, sequence: int) -> str:
    """Task under a functional requirement, e.g. ``PTES-RAU-EAU-FRL-01-LOG-01``."""
    return _join(fr_hierarchy_id, _task_segment(task_name, sequence), pad_sequence(sequence))


def task_id_without_fr(code: str, project_name: str, task_name: str, sequence: int) -> str:
    return _join(
        _project_segment(code, project_name),
        _task_segment(task_name, sequence),
        pad_sequence(sequence),
    )


def project_task_id(code: str, project_name: str, sequence: int) -> str:
    """Task attached to neither an FR nor a sprint, e.g. ``PTES-T03``."""
    return f"{_project_segment(code, project_name)}-T{pad_sequence(sequence)}"


def subtask_id(parent_hierarchy_id: str, sequence: int) -> str:
    return f"{parent_hierarchy_id}.{pad_sequence(sequence)}"


def sprint_id(code: str, project_name: str, sprint_name: str) -> str:
    """``PTES-SSPRINT1`` style ID; sprints carry no separate sequence number."""
    sprint_code = _NON_ALNUM.sub("", sprint_name or "").upper()
    return f"{_project_segment(code, project_name)}-S{sprint_code}"
