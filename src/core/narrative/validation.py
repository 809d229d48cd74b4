"""
FILE: src/core/narrative/validation.py
Banned-phrase validation for AI-generated narrative text.
"""

from typing import Iterable, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.core.narrative.policies import PLAN_SUMMARY_BANNED_PHRASES


class MissingSectionError(ValueError):
    def __init__(self, section: str) -> None:
        super().__init__(f"NARRATIVE_SECTION_MISSING: {section}")
        self.section = section


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    valid: bool = Field(description="True when no banned phrase was found.", examples=[False])
    violations: list[str] = Field(
        default_factory=list,
        description="Violated phrases, once each, in policy order.",
        examples=[["you should"]],
    )


class ResponseValidator:
    """
    Scans text for banned phrases using case-insensitive substring containment.

    The policy is captured once at construction; the validator holds no other state.
    """

    def __init__(self, policy: Iterable[str] = PLAN_SUMMARY_BANNED_PHRASES) -> None:
        phrases: list[str] = []
        for phrase in policy:
            if not isinstance(phrase, str) or not phrase.strip():
                raise ValueError("banned phrases must be non-empty strings")
            if phrase not in phrases:
                phrases.append(phrase)
        self._policy = tuple(phrases)
        self._folded = tuple(phrase.casefold() for phrase in self._policy)

    @property
    def policy(self) -> tuple[str, ...]:
        return self._policy

    def validate_text(self, text: str) -> ValidationResult:
        if not isinstance(text, str):
            raise TypeError(f"text must be a string, got {type(text).__name__}")
        folded_text = text.casefold()
        violations = [
            phrase
            for phrase, folded in zip(self._policy, self._folded)
            if folded in folded_text
        ]
        return ValidationResult(valid=not violations, violations=violations)

    def validate_sections(
        self,
        sections: Mapping[str, Optional[str]],
        *,
        exempt: Iterable[str] = (),
        required: Iterable[str] = (),
    ) -> ValidationResult:
        exempt_names = set(exempt)
        for name in required:
            if sections.get(name) is None:
                raise MissingSectionError(name)

        scanned: list[str] = []
        for name, text in sections.items():
            if name in exempt_names:
                continue
            if text is None:
                raise MissingSectionError(name)
            if not isinstance(text, str):
                raise TypeError(f"section '{name}' must be a string, got {type(text).__name__}")
            scanned.append(text)
        return self.validate_text(" ".join(scanned))


def validate_text(text: str, policy: Iterable[str]) -> ValidationResult:
    return ResponseValidator(policy).validate_text(text)


def validate_sections(
    sections: Mapping[str, Optional[str]],
    policy: Iterable[str],
    *,
    exempt: Iterable[str] = (),
    required: Iterable[str] = (),
) -> ValidationResult:
    return ResponseValidator(policy).validate_sections(
        sections, exempt=exempt, required=required
    )
