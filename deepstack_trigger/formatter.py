"""Mustache-style payload templates for notifications."""

import json
import os
import re
from typing import Any, Dict, Optional, Sequence
from urllib.parse import quote

from .models.prediction import Prediction
from .utils import format_predictions

# {{name}} and {{{name}}} are both accepted. Output is never HTML escaped.
_TOKEN = re.compile(r"\{\{\{?\s*([\w.]+)\s*\}?\}\}")


def build_view(file_name: str, trigger: Any, predictions: Sequence[Prediction],
               analysis_duration_ms: Optional[float] = None) -> Dict[str, Any]:
    """Collect the variables available to templates and default payloads."""
    statistics = trigger.statistics.snapshot()
    if analysis_duration_ms is None:
        analysis_duration_ms = trigger.analysis_duration_ms

    return {
        "fileName": file_name,
        "baseName": os.path.basename(file_name),
        "predictions": [p.to_json() for p in predictions],
        "formattedPredictions": format_predictions(predictions),
        "name": trigger.name,
        "state": "on",
        "analysisDurationMs": analysis_duration_ms,
        "analyzedFilesCount": statistics.analyzed_files_count,
        "triggeredCount": statistics.triggered_count,
        "formattedStatistics": statistics.formatted,
    }


def format_template(template: str, file_name: str, trigger: Any, predictions: Sequence[Prediction],
                    url_encode: bool = False, analysis_duration_ms: Optional[float] = None) -> str:
    """Render a template, replacing {{variable}} tokens.

    Unknown variables render as empty strings. With ``url_encode`` each
    substituted value is percent-encoded, the template text itself is not.
    """
    view = build_view(file_name, trigger, predictions, analysis_duration_ms)

    def replace(match: "re.Match") -> str:
        value = view.get(match.group(1))
        if value is None:
            text = ""
        elif isinstance(value, (list, dict)):
            text = json.dumps(value)
        else:
            text = str(value)
        return quote(text, safe="") if url_encode else text

    return _TOKEN.sub(replace, template)


def default_payload(file_name: str, trigger: Any, predictions: Sequence[Prediction],
                    analysis_duration_ms: Optional[float] = None) -> str:
    """The JSON body sent when a handler has no custom template."""
    return json.dumps(build_view(file_name, trigger, predictions, analysis_duration_ms))
