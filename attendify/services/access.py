# attendify/services/access.py
"""Regra de elegibilidade de um aluno para um evento.

Função pura: não acessa banco nem relógio. Quem chama decide o que fazer
com a negação (ensure_event_access levanta o erro correspondente).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from attendify.core.errors import CourseNotSetError, NotAuthorizedToScanError
from attendify.models.event import normalize_course, parse_courses_csv
from attendify.models.user import Role

COURSE_NOT_SET = "COURSE_NOT_SET"
NOT_AUTHORIZED = "NOT_AUTHORIZED_TO_SCAN"


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    denial: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = AccessDecision(True)
DENY = AccessDecision(False, NOT_AUTHORIZED)


def _matches_optional(required: Optional[str], actual: Optional[str]) -> bool:
    # campo vazio no evento = sem restrição
    if not (required or "").strip():
        return True
    return normalize_course(required) == normalize_course(actual)


def _cohort_matches(event, student) -> bool:
    return _matches_optional(event.year_level, student.year_level) and _matches_optional(event.department, student.department)


def can_access_event(event, student) -> AccessDecision:
    if student.role != Role.student.value:
        return ALLOW

    user_course = normalize_course(student.course)
    if not user_course:
        return AccessDecision(False, COURSE_NOT_SET)

    primary = normalize_course(event.course)
    tags = parse_courses_csv(event.tagged_courses)
    # qualquer texto em tagged_courses restringe, mesmo sem curso válido
    tagged = bool((event.tagged_courses or "").strip())

    if not primary and not tagged:
        return ALLOW

    if primary:
        if user_course == primary:
            if not _cohort_matches(event, student):
                return DENY
            if not tagged:
                return ALLOW
            # com tags, o curso também precisa estar na lista
        elif not tagged:
            return DENY

    if user_course not in tags:
        return DENY
    return ALLOW if _cohort_matches(event, student) else DENY


def ensure_event_access(event, student) -> None:
    decision = can_access_event(event, student)
    if decision.allowed:
        return
    if decision.denial == COURSE_NOT_SET:
        raise CourseNotSetError()
    raise NotAuthorizedToScanError()
