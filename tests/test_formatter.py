"""Unit tests for payload templates."""

import unittest
import json
import os
import sys
from datetime import datetime
from unittest.mock import Mock

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from deepstack_trigger.formatter import build_view, default_payload, format_template
from deepstack_trigger.models.config import TriggerConfig
from deepstack_trigger.models.prediction import Prediction
from deepstack_trigger.trigger import Trigger
from deepstack_trigger.utils import format_predictions


class TestFormatter(unittest.TestCase):
    """Test cases for template rendering."""

    def setUp(self):
        self.trigger = Trigger(
            TriggerConfig.from_json({"name": "Front door"}),
            Mock(),
            clock=lambda: datetime(2024, 1, 1),
        )
        self.trigger.statistics.increment_analyzed()
        self.trigger.statistics.increment_analyzed()
        self.trigger.statistics.increment_triggered()
        self.trigger.analysis_duration_ms = 40
        self.predictions = [
            Prediction("person", 0.912, 0, 0, 10, 10),
            Prediction("dog", 0.5, 5, 5, 20, 20),
        ]

    def test_format_predictions(self):
        self.assertEqual(format_predictions(self.predictions), "person (91%), dog (50%)")
        self.assertEqual(format_predictions([]), "")

    def test_view_variables(self):
        view = build_view("/aiinput/front 1.jpg", self.trigger, self.predictions)

        self.assertEqual(view["fileName"], "/aiinput/front 1.jpg")
        self.assertEqual(view["baseName"], "front 1.jpg")
        self.assertEqual(view["name"], "Front door")
        self.assertEqual(view["state"], "on")
        self.assertEqual(view["analysisDurationMs"], 40)
        self.assertEqual(view["analyzedFilesCount"], 2)
        self.assertEqual(view["triggeredCount"], 1)
        self.assertEqual(view["formattedStatistics"], "Triggered: 1, Analyzed: 2")

    def test_explicit_duration_wins(self):
        view = build_view("/aiinput/a.jpg", self.trigger, [], analysis_duration_ms=7)
        self.assertEqual(view["analysisDurationMs"], 7)

    def test_template(self):
        rendered = format_template(
            "{{name}}: {{formattedPredictions}} in {{baseName}}",
            "/aiinput/front 1.jpg", self.trigger, self.predictions,
        )

        self.assertEqual(rendered, "Front door: person (91%), dog (50%) in front 1.jpg")

    def test_triple_braces_and_unknown_variables(self):
        rendered = format_template("{{{ name }}}|{{missing}}|", "/aiinput/a.jpg", self.trigger, [])
        self.assertEqual(rendered, "Front door||")

    def test_url_encoding_applies_to_values_only(self):
        rendered = format_template(
            "http://hub/api?file={{baseName}}&name={{name}}",
            "/aiinput/front 1.jpg", self.trigger, self.predictions, url_encode=True,
        )

        self.assertEqual(rendered, "http://hub/api?file=front%201.jpg&name=Front%20door")

    def test_predictions_render_as_json(self):
        rendered = format_template("{{predictions}}", "/aiinput/a.jpg", self.trigger, self.predictions[:1])
        self.assertEqual(json.loads(rendered)[0]["label"], "person")

    def test_default_payload(self):
        payload = json.loads(default_payload("/aiinput/a.jpg", self.trigger, self.predictions))

        self.assertEqual(payload["formattedPredictions"], "person (91%), dog (50%)")
        self.assertEqual(len(payload["predictions"]), 2)
        self.assertEqual(payload["predictions"][1]["x_max"], 20)


if __name__ == '__main__':
    unittest.main()
