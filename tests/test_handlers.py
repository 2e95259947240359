"""Unit tests for notification handlers and the dispatcher."""

import unittest
import json
import os
import sys
import threading
from datetime import datetime, timedelta
from unittest.mock import Mock

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from deepstack_trigger.handlers.dispatcher import NotificationDispatcher
from deepstack_trigger.handlers.mqtt_handler import MqttHandler
from deepstack_trigger.handlers.pushbullet_handler import PushbulletHandler
from deepstack_trigger.handlers.pushover_handler import PushoverHandler
from deepstack_trigger.handlers.telegram_handler import TelegramHandler
from deepstack_trigger.handlers.web_request_handler import WebRequestHandler
from deepstack_trigger.models.config import Settings, TriggerConfig
from deepstack_trigger.models.prediction import Prediction, TriggerEvent
from deepstack_trigger.models.statistics import StatisticsSnapshot
from deepstack_trigger.services.error_handler import ErrorHandler
from deepstack_trigger.services.local_storage import LocalStorage
from deepstack_trigger.trigger import Trigger

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)

SETTINGS = {
    "deepstackUri": "http://deepstack:5000",
    "mqtt": {"uri": "mqtt://broker:1883"},
    "telegram": {"botToken": "bot-token"},
    "pushover": {"apiKey": "api-key", "userKey": "account-user"},
    "pushbullet": {"accessToken": "o.token"},
}


def make_settings(**overrides) -> Settings:
    data = dict(SETTINGS)
    data.update(overrides)
    return Settings.from_json(data)


def make_trigger(handlers, name="Dog") -> Trigger:
    config = TriggerConfig.from_json({"name": name, "watchObjects": ["dog"], "handlers": handlers})
    return Trigger(config, Mock(), clock=lambda: BASE_TIME)


def make_event(seconds: float = 1, file_name="/aiinput/Dog 1.jpg", name="Dog") -> TriggerEvent:
    return TriggerEvent(
        file_name=file_name,
        trigger_name=name,
        received_date=BASE_TIME + timedelta(seconds=seconds),
        predictions=[Prediction("dog", 0.87, 10, 10, 50, 50)],
        analysis_duration_ms=12.5,
    )


class TestMqttHandler(unittest.TestCase):
    """Test cases for MqttHandler."""

    def setUp(self):
        self.client = Mock()
        self.client.publish.return_value = True
        self.timers = Mock()
        self.error_handler = ErrorHandler()
        self.handler = MqttHandler(make_settings(), self.client, timers=self.timers, error_handler=self.error_handler)

    def tearDown(self):
        self.handler.stop()

    def test_default_payload(self):
        trigger = make_trigger({"mqtt": {"messages": [{"topic": "aimotion/dog"}]}})

        self.assertEqual(self.handler.process_trigger(make_event(), trigger), 1)

        topic, payload = self.client.publish.call_args[0]
        body = json.loads(payload)
        self.assertEqual(topic, "aimotion/dog")
        self.assertEqual(body["fileName"], "/aiinput/Dog 1.jpg")
        self.assertEqual(body["baseName"], "Dog 1.jpg")
        self.assertEqual(body["name"], "Dog")
        self.assertEqual(body["state"], "on")
        self.assertEqual(body["formattedPredictions"], "dog (87%)")
        self.assertEqual(body["analysisDurationMs"], 12.5)
        self.assertEqual(body["predictions"][0]["label"], "dog")

    def test_custom_payload(self):
        trigger = make_trigger({"mqtt": {"messages": [{"topic": "aimotion/dog", "payload": "{{name}}: {{formattedPredictions}}"}]}})

        self.handler.process_trigger(make_event(), trigger)

        self.client.publish.assert_called_once_with("aimotion/dog", "Dog: dog (87%)")

    def test_every_message_is_published_and_off_timer_armed(self):
        trigger = make_trigger({"mqtt": {"messages": [
            {"topic": "aimotion/dog", "offDelay": 5},
            {"topic": "aimotion/any"},
            {"topic": "aimotion/no-off", "offDelay": 0},
        ]}})

        self.assertEqual(self.handler.process_trigger(make_event(), trigger), 3)

        armed = {c[0][0]: c[0][1] for c in self.timers.arm.call_args_list}
        self.assertEqual(armed, {"aimotion/dog": 5, "aimotion/any": 30})

    def test_failed_publish_does_not_arm_timer(self):
        self.client.publish.return_value = False
        trigger = make_trigger({"mqtt": {"messages": [{"topic": "aimotion/dog"}]}})

        self.assertEqual(self.handler.process_trigger(make_event(), trigger), 0)

        self.timers.arm.assert_not_called()
        self.assertEqual(self.error_handler.get_error_count("handlers.MQTT"), 1)

    def test_off_event_payload(self):
        self.handler.publish_off_event("aimotion/dog")
        self.client.publish.assert_called_once_with("aimotion/dog", json.dumps({"state": "off"}))

    def test_disabled_without_client(self):
        handler = MqttHandler(make_settings(), None)
        trigger = make_trigger({"mqtt": {"messages": [{"topic": "aimotion/dog"}]}})

        self.assertEqual(handler.process_trigger(make_event(), trigger), 0)
        self.assertFalse(handler.publish_statistics(StatisticsSnapshot(1, 1)))
        handler.stop()

    def test_trigger_without_mqtt_config(self):
        self.assertEqual(self.handler.process_trigger(make_event(), make_trigger({})), 0)
        self.client.publish.assert_not_called()

    def test_disabled_on_trigger(self):
        trigger = make_trigger({"mqtt": {"enabled": False, "messages": [{"topic": "aimotion/dog"}]}})

        self.assertEqual(self.handler.process_trigger(make_event(), trigger), 0)

    def test_publish_statistics(self):
        self.handler.publish_statistics(StatisticsSnapshot(analyzed_files_count=10, triggered_count=3))

        topic, payload = self.client.publish.call_args[0]
        self.assertEqual(topic, "deepstack-trigger/status")
        self.assertEqual(json.loads(payload), {
            "state": "online",
            "triggerCount": 3,
            "analyzedFilesCount": 10,
            "formattedStatistics": "Triggered: 3, Analyzed: 10",
        })

    def test_publish_trigger_statistics(self):
        self.handler.publish_trigger_statistics(StatisticsSnapshot(4, 1, name="Dog"))

        topic, payload = self.client.publish.call_args[0]
        self.assertEqual(topic, "deepstack-trigger/status/statistics/trigger")
        self.assertEqual(json.loads(payload)["name"], "Dog")

    def test_publish_server_state(self):
        self.handler.publish_server_state("offline", "bad config")

        self.client.publish.assert_called_once_with(
            "deepstack-trigger/status", json.dumps({"state": "offline", "details": "bad config"})
        )

    def test_stop_cancels_timers(self):
        self.handler.stop()
        self.timers.cancel_all.assert_called_once()


class TestTelegramHandler(unittest.TestCase):
    """Test cases for TelegramHandler."""

    def setUp(self):
        self.client = Mock()
        self.client.send.return_value = True
        self.now = BASE_TIME
        self.handler = TelegramHandler(make_settings(), self.client, clock=lambda: self.now)

    def tearDown(self):
        self.handler.stop()

    def test_sends_to_every_chat_with_trigger_name(self):
        trigger = make_trigger({"telegram": {"chatIds": [111, 222]}})

        self.assertEqual(self.handler.process_trigger(make_event(), trigger), 2)

        sent = sorted(c[0] for c in self.client.send.call_args_list)
        self.assertEqual(sent, [("111", "Dog", "/aiinput/Dog 1.jpg"), ("222", "Dog", "/aiinput/Dog 1.jpg")])

    def test_caption_template(self):
        trigger = make_trigger({"telegram": {"chatIds": [111], "caption": "{{name}} saw {{formattedPredictions}}"}})

        self.handler.process_trigger(make_event(), trigger)

        self.assertEqual(self.client.send.call_args[0][1], "Dog saw dog (87%)")

    def test_one_failing_chat_does_not_block_others(self):
        def send(chat_id, caption, image):
            if chat_id == "111":
                raise RuntimeError("chat not found")
            return True

        self.client.send.side_effect = send
        trigger = make_trigger({"telegram": {"chatIds": [111, 222, 333]}})

        self.assertEqual(self.handler.process_trigger(make_event(), trigger), 2)
        self.assertEqual(self.client.send.call_count, 3)

    def test_targets_are_sent_in_parallel(self):
        started = threading.Barrier(2, timeout=5)

        def send(chat_id, caption, image):
            # Both sends must be in flight at once for the barrier to release
            started.wait()
            return True

        self.client.send.side_effect = send
        trigger = make_trigger({"telegram": {"chatIds": [111, 222]}})

        self.assertEqual(self.handler.process_trigger(make_event(), trigger), 2)

    def test_cooldown(self):
        trigger = make_trigger({"telegram": {"chatIds": [111], "cooldownTime": 60}})

        self.assertEqual(self.handler.process_trigger(make_event(), trigger), 1)
        self.now = BASE_TIME + timedelta(seconds=30)
        self.assertEqual(self.handler.process_trigger(make_event(), trigger), 0)
        self.now = BASE_TIME + timedelta(seconds=61)
        self.assertEqual(self.handler.process_trigger(make_event(), trigger), 1)
        self.assertEqual(self.client.send.call_count, 2)

    def test_cooldown_survives_trigger_replacement(self):
        handlers = {"telegram": {"chatIds": [111], "cooldownTime": 60}}

        self.handler.process_trigger(make_event(), make_trigger(handlers))
        self.now = BASE_TIME + timedelta(seconds=30)

        self.assertEqual(self.handler.process_trigger(make_event(), make_trigger(handlers)), 0)

    def test_cooldown_uses_send_time_not_file_time(self):
        trigger = make_trigger({"telegram": {"chatIds": [111], "cooldownTime": 60}})
        backlog = [
            make_event(-86400, file_name="/aiinput/Dog 1.jpg"),
            make_event(-86400 + 3600, file_name="/aiinput/Dog 2.jpg"),
        ]

        sent = [self.handler.process_trigger(event, trigger) for event in backlog]

        self.assertEqual(sent, [1, 0])
        self.assertEqual(self.client.send.call_count, 1)

    def test_failed_send_does_not_start_cooldown(self):
        self.client.send.return_value = False
        trigger = make_trigger({"telegram": {"chatIds": [111], "cooldownTime": 60}})

        self.assertEqual(self.handler.process_trigger(make_event(), trigger), 0)

        self.client.send.return_value = True
        self.now = BASE_TIME + timedelta(seconds=10)
        self.assertEqual(self.handler.process_trigger(make_event(), trigger), 1)

    def test_stop_forgets_cooldowns(self):
        trigger = make_trigger({"telegram": {"chatIds": [111], "cooldownTime": 60}})
        self.handler.process_trigger(make_event(), trigger)

        self.handler.stop()

        self.assertTrue(self.handler.cooldowns.try_acquire("Dog", 60, self.now))

    def test_annotate_image_without_annotations_sends_original(self):
        trigger = make_trigger({"telegram": {"chatIds": [111], "annotateImage": True}})

        self.handler.process_trigger(make_event(), trigger)

        self.assertEqual(self.client.send.call_args[0][2], "/aiinput/Dog 1.jpg")

    def test_annotate_image_with_annotations_sends_annotated_copy(self):
        storage = LocalStorage("/deepstack-trigger")
        handler = TelegramHandler(make_settings(enableAnnotations=True), self.client, storage=storage)
        trigger = make_trigger({"telegram": {"chatIds": [111], "annotateImage": True}})

        handler.process_trigger(make_event(), trigger)
        handler.stop()

        self.assertEqual(
            self.client.send.call_args[0][2],
            os.path.join("/deepstack-trigger", "annotations", "Dog 1.jpg"),
        )

    def test_globally_disabled(self):
        handler = TelegramHandler(make_settings(telegram={"botToken": "t", "enabled": False}), self.client)
        trigger = make_trigger({"telegram": {"chatIds": [111]}})

        self.assertEqual(handler.process_trigger(make_event(), trigger), 0)
        handler.stop()


class TestPushoverHandler(unittest.TestCase):
    """Test cases for PushoverHandler."""

    def setUp(self):
        self.client = Mock()
        self.client.send.return_value = True
        self.handler = PushoverHandler(make_settings(), self.client)

    def tearDown(self):
        self.handler.stop()

    def test_sends_to_user_keys_with_sound(self):
        trigger = make_trigger({"pushover": {"userKeys": ["user-a", "user-b"], "sound": "siren"}})

        self.assertEqual(self.handler.process_trigger(make_event(), trigger), 2)

        users = sorted(c[0][0] for c in self.client.send.call_args_list)
        self.assertEqual(users, ["user-a", "user-b"])
        self.assertEqual(self.client.send.call_args[1], {"sound": "siren"})

    def test_falls_back_to_account_user_key(self):
        trigger = make_trigger({"pushover": {"userKeys": []}})

        self.handler.process_trigger(make_event(), trigger)

        self.assertEqual(self.client.send.call_args[0][0], "account-user")


class TestPushbulletHandler(unittest.TestCase):
    """Test cases for PushbulletHandler."""

    def test_caption_and_title(self):
        client = Mock()
        client.send.return_value = True
        handler = PushbulletHandler(make_settings(), client)
        trigger = make_trigger({"pushbullet": {"caption": "{{formattedPredictions}}", "title": "{{name}} alert"}})

        self.assertEqual(handler.process_trigger(make_event(), trigger), 1)
        handler.stop()

        args, kwargs = client.send.call_args
        self.assertEqual(args, ("all", "dog (87%)", "/aiinput/Dog 1.jpg"))
        self.assertEqual(kwargs, {"title": "Dog alert"})


class TestWebRequestHandler(unittest.TestCase):
    """Test cases for WebRequestHandler."""

    def test_uris_are_url_encoded(self):
        client = Mock()
        client.send.return_value = True
        handler = WebRequestHandler(make_settings(), client)
        trigger = make_trigger({"webRequest": {"triggerUris": [
            "http://hub/motion?file={{baseName}}",
            "http://hub/other",
        ]}})

        self.assertEqual(handler.process_trigger(make_event(), trigger), 2)
        handler.stop()

        uris = sorted(c[0][0] for c in client.send.call_args_list)
        self.assertEqual(uris, ["http://hub/motion?file=Dog%201.jpg", "http://hub/other"])


class TestNotificationDispatcher(unittest.TestCase):
    """Test cases for NotificationDispatcher."""

    def test_failing_handler_does_not_affect_others(self):
        failing = Mock(spec=["process_trigger", "stop", "name"])
        failing.name = "failing"
        failing.process_trigger.side_effect = RuntimeError("boom")
        working = Mock(spec=["process_trigger", "stop", "name"])
        working.name = "working"
        working.process_trigger.return_value = 1
        dispatcher = NotificationDispatcher([failing, working])
        event = make_event()
        trigger = make_trigger({})

        futures = dispatcher.dispatch(event, trigger)
        results = [f.result(timeout=5) for f in futures]
        dispatcher.shutdown()

        self.assertEqual(results, [0, 1])
        working.process_trigger.assert_called_once_with(event, trigger)

    def test_statistics_go_to_handlers_that_publish(self):
        status_bus = Mock(spec=["publish_statistics", "publish_trigger_statistics", "publish_server_state", "stop", "name"])
        status_bus.publish_statistics.side_effect = RuntimeError("broker gone")
        chat = Mock(spec=["process_trigger", "stop", "name"])
        dispatcher = NotificationDispatcher([status_bus, chat])
        snapshot = StatisticsSnapshot(2, 1)

        dispatcher.publish_statistics(snapshot)
        dispatcher.publish_trigger_statistics(snapshot)
        dispatcher.publish_server_state("online")
        dispatcher.shutdown()

        status_bus.publish_statistics.assert_called_once_with(snapshot)
        status_bus.publish_trigger_statistics.assert_called_once_with(snapshot)
        status_bus.publish_server_state.assert_called_once_with("online", None)
        chat.stop.assert_called_once()


if __name__ == '__main__':
    unittest.main()
