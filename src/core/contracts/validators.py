"""
JSON Schema Contract Validators

Документы конфигурации движка формул проверяются против схем из schema/
(Draft 2020-12) до построения pydantic моделей.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Final, Mapping

import jsonschema
from jsonschema import Draft202012Validator

SCHEMA_DIR: Final[Path] = Path(__file__).parent / "schema"

FORMULA_CONFIG_SCHEMA: Final[str] = "formula_config"


@lru_cache(maxsize=None)
def load_schema(schema_name: str) -> Dict[str, Any]:
    """
    Загрузка схемы schema/<schema_name>.json с meta-validation.

    Raises:
        FileNotFoundError: Если файл схемы не найден
        ValueError: Если схема сама невалидна
    """
    schema_path = SCHEMA_DIR / f"{schema_name}.json"
    with open(schema_path, "r", encoding="utf-8") as f:
        schema = json.load(f)

    try:
        Draft202012Validator.check_schema(schema)
    except jsonschema.SchemaError as e:
        raise ValueError(f"Invalid JSON Schema in {schema_path.name}: {e.message}") from e

    return schema


@lru_cache(maxsize=None)
def contract_validator(schema_name: str) -> Draft202012Validator:
    """Validator для схемы (один экземпляр на схему)."""
    return Draft202012Validator(load_schema(schema_name))


def validate_formula_config(data: Mapping[str, Any]) -> None:
    """
    Валидация formula_config документа.

    Raises:
        jsonschema.ValidationError: Если документ не соответствует контракту
    """
    contract_validator(FORMULA_CONFIG_SCHEMA).validate(data)
