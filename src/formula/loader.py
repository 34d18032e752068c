"""
Загрузка FormulaConfig из внешнего источника.

Документ конфигурации проверяется JSON Schema контрактом formula_config,
затем строится immutable FormulaConfig. Дробные числа читаются из JSON
сразу как Decimal (parse_float=Decimal), минуя binary float.
"""

import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Mapping

from src.core.contracts.validators import validate_formula_config
from src.core.domain.config import FormulaConfig

logger = logging.getLogger(__name__)


def formula_config_from_dict(data: Mapping[str, Any]) -> FormulaConfig:
    """
    Построение FormulaConfig из mapping.

    Args:
        data: Документ конфигурации (как в formula_config.json)

    Returns:
        FormulaConfig

    Raises:
        jsonschema.ValidationError: Если документ не соответствует контракту
        pydantic.ValidationError: Если значения не проходят валидацию модели
    """
    document = dict(data)
    validate_formula_config(document)
    return FormulaConfig.model_validate(document)


def load_formula_config(path: str | Path) -> FormulaConfig:
    """
    Загрузка FormulaConfig из JSON файла.

    Args:
        path: Путь к JSON документу

    Returns:
        FormulaConfig

    Raises:
        FileNotFoundError: Если файл не найден
        json.JSONDecodeError: Если файл не является валидным JSON
        jsonschema.ValidationError: Если документ не соответствует контракту
    """
    config_path = Path(path)
    with open(config_path, "r", encoding="utf-8") as f:
        document = json.load(f, parse_float=Decimal)

    config = formula_config_from_dict(document)
    logger.info(
        "Loaded formula config from %s (risk_config=%s, max_period=%d, day_rows=%d, hour_rows=%d)",
        config_path,
        config.risk_config,
        config.max_period,
        len(config.q_claim_config_day),
        len(config.q_claim_config_hour),
    )
    return config
