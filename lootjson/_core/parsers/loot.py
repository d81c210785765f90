import logging
from typing import Any, List, Optional, Tuple

from pydantic import Field

from lootjson._core.environment import settings
from lootjson._core.error import LootError, LootErrorCode
from lootjson._core.logging import get_logger
from lootjson._core.parsers.extract import find_json_candidates
from lootjson._core.parsers.repair.repairer import JsonRepairer, RulesLike
from lootjson._core.parsers.repair.types import RepairLog
from lootjson._core.schema import RichBaseModel
from lootjson._core.utils import strict_loads
from lootjson.validation.types import LootSchema, ValidationError
from lootjson.validation.validator import SchemaValidator

logger = get_logger(__name__)
LOG_LEVEL = logging._nameToLevel[settings.repair_log_level]

_UNPARSED = object()


class Looted(RichBaseModel):
    """A `loot` result together with every repair applied to produce it."""

    result: Any = None
    repairs: List[RepairLog] = Field(default_factory=list)


def _try_parse(candidate: str, repairer: Optional[JsonRepairer]) -> Tuple[Any, List[RepairLog]]:
    try:
        return strict_loads(candidate), []
    except ValueError as e:
        if repairer is None:
            logger.log(LOG_LEVEL, f'Candidate rejected without repair: {e}')
            return _UNPARSED, []

    repaired = repairer.repair_with_log(candidate)
    try:
        return strict_loads(repaired.text), repaired.repairs
    except ValueError as e:
        logger.log(LOG_LEVEL, f'Candidate still invalid after repair: {e}')
        return _UNPARSED, []


def loot(
    text: str,
    *,
    silent: bool = False,
    repair: bool = True,
    all_results: bool = False,
    report_repairs: bool = False,
    schema: Optional[LootSchema] = None,
    rules: RulesLike = None,
    config=None,
) -> Any:
    """
    Find and parse the JSON embedded in `text`.

    Candidates are tried in order (markdown blocks first, then balanced
    brackets); each is parsed directly, then after repair.

    Args:
        text: Raw model output.
        silent: Return None (or [] with `all_results`) instead of raising.
        repair: Attempt repair when direct parsing fails.
        all_results: Return every parseable candidate instead of the first.
        report_repairs: Wrap the result in `Looted` with the repair log.
        schema: Only accept candidates that validate against this schema.
        rules: Repair rule overrides.
        config: Optional `Config` supplying `repair.rules` and `schema`.

    Returns:
        The parsed value, a list of values, or a `Looted` wrapper.

    Raises:
        LootError: EMPTY_INPUT, NO_JSON_FOUND or VALIDATION_FAILED when not silent.
    """
    if config is not None:
        rules = rules if rules is not None else config.repair_rules()
        schema = schema if schema is not None else config.schema()

    def _empty():
        value = [] if all_results else None
        return Looted(result=value) if report_repairs else value

    if not text or not isinstance(text, str):
        if silent:
            return _empty()
        raise LootError('Input must be a non-empty string', LootErrorCode.EMPTY_INPUT)

    repairer = JsonRepairer(rules=rules, track_repairs=report_repairs) if repair else None
    validator = SchemaValidator() if schema is not None else None
    results: List[Any] = []
    repairs: List[RepairLog] = []
    rejected: List[ValidationError] = []

    candidates = find_json_candidates(text)
    logger.log(LOG_LEVEL, f'Found {len(candidates)} JSON candidate(s)')

    for candidate in candidates:
        parsed, applied = _try_parse(candidate, repairer)
        if parsed is _UNPARSED:
            continue

        if validator is not None:
            outcome = validator.validate(parsed, schema)
            if not outcome.valid:
                logger.log(
                    LOG_LEVEL,
                    f'Candidate failed schema validation with {len(outcome.errors)} error(s)',
                )
                rejected = rejected or outcome.errors
                continue

        repairs.extend(applied)
        if not all_results:
            return Looted(result=parsed, repairs=repairs) if report_repairs else parsed
        results.append(parsed)

    if results:
        return Looted(result=results, repairs=repairs) if report_repairs else results

    if silent:
        return _empty()

    if rejected:
        raise LootError(
            'No JSON candidate matched the schema',
            LootErrorCode.VALIDATION_FAILED,
            details=rejected,
        )
    raise LootError(
        'No valid JSON found in the provided text', LootErrorCode.NO_JSON_FOUND
    )
