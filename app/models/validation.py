# app/models/validation.py
from pydantic import BaseModel, Field
from typing import List


class ValidationResult(BaseModel):
    """Résultat d'un contrôle : erreurs bloquantes et avertissements."""
    is_valid: bool
    violations: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @classmethod
    def from_lists(cls, violations: List[str], warnings: List[str] = None) -> "ValidationResult":
        return cls(
            is_valid=len(violations) == 0,
            violations=list(violations),
            warnings=list(warnings or []),
        )
