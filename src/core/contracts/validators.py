"""
JSON Schema Contract Validators

Валидация границы с внешним TransactionCommitter по формальным JSON Schema
контрактам (Draft 2020-12, библиотека jsonschema).

Схемы:
- cart_snapshot.json (снапшот корзины, отправляемый на commit)
- commit_result.json (ответ committer)

Нарушение контракта снапшота — ошибка программы, а не ввода продавца:
jsonschema.ValidationError пробрасывается без преобразования.
"""

import json
from pathlib import Path
from typing import Any, Dict

import jsonschema
from jsonschema import Draft202012Validator, ValidationError


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Загрузчик JSON Schema файлов из contracts/schema/ в корне проекта.
    """

    def __init__(self, schema_dir: Path | None = None):
        # Корень проекта — 4 уровня вверх от этого файла
        self._schema_dir = schema_dir or Path(__file__).parent.parent.parent.parent / "contracts" / "schema"
        if not self._schema_dir.exists():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")

        self._schemas: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Загрузка схемы по имени без расширения (например, 'cart_snapshot').

        Raises:
            FileNotFoundError: Если файл схемы не найден
            ValueError: Если файл не является валидной JSON Schema
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self._schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e}") from e

        self._schemas[schema_name] = schema
        return schema


_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """Валидатор данных против одной JSON Schema."""

    def __init__(self, schema_name: str):
        self.schema_name = schema_name
        self.schema = _SCHEMA_LOADER.load_schema(schema_name)
        self.validator = Draft202012Validator(self.schema)

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Raises:
            ValidationError: Если данные не соответствуют схеме
        """
        self.validator.validate(data)

    def is_valid(self, data: Dict[str, Any]) -> bool:
        return self.validator.is_valid(data)

    def iter_errors(self, data: Dict[str, Any]):
        """Все ошибки валидации (для диагностики)."""
        return self.validator.iter_errors(data)


class CartSnapshotValidator(ContractValidator):
    """Валидатор снапшота корзины перед отправкой на commit."""

    def __init__(self):
        super().__init__("cart_snapshot")


class CommitResultValidator(ContractValidator):
    """Валидатор ответа TransactionCommitter."""

    def __init__(self):
        super().__init__("commit_result")


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_cart_snapshot(data: Dict[str, Any]) -> None:
    """
    Raises:
        ValidationError: Если снапшот не соответствует схеме
    """
    CartSnapshotValidator().validate(data)


def validate_commit_result(data: Dict[str, Any]) -> None:
    """
    Raises:
        ValidationError: Если ответ не соответствует схеме
    """
    CommitResultValidator().validate(data)


__all__ = [
    "SchemaLoader",
    "ContractValidator",
    "CartSnapshotValidator",
    "CommitResultValidator",
    "ValidationError",
    "validate_cart_snapshot",
    "validate_commit_result",
]
