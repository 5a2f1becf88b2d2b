import math
from typing import Any, Iterable, Union

from services.ledger import TopicSubmission
from services.parsers import is_valid_result, parse_fraction_to_percent
from utils.text_utils import normalize_hashtags


class SubmissionError(ValueError):
    """Raised when study-cycle form input cannot be accepted"""


def build_submission(
    name: Any,
    result_before: Any,
    result_after: Any,
    confidence: Any,
    tags: Union[str, Iterable[str], None] = None,
) -> TopicSubmission:
    """Validate raw form values and derive the percentages"""
    name = (name or "").strip() if isinstance(name, str) else ""
    if not name:
        raise SubmissionError("Topic name is required")

    confidence = (confidence or "").strip() if isinstance(confidence, str) else ""
    if not confidence:
        raise SubmissionError("Confidence level is required")

    result_before = str(result_before).strip() if result_before is not None else ""
    result_after = str(result_after).strip() if result_after is not None else ""
    if not (is_valid_result(result_before) and is_valid_result(result_after)):
        raise SubmissionError(
            "Results must look like correct/total or correct,total (e.g. 7/10 or 7,10)"
        )

    percent_before = parse_fraction_to_percent(result_before)
    percent_after = parse_fraction_to_percent(result_after)
    for percent in (percent_before, percent_after):
        if math.isnan(percent) or percent < 0 or percent > 100:
            raise SubmissionError("Results must be between 0 and 100 percent")

    return TopicSubmission(
        name=name,
        result_before=result_before,
        result_after=result_after,
        percent_before=percent_before,
        percent_after=percent_after,
        confidence=confidence,
        tags=normalize_hashtags(tags),
    )
