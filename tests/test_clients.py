"""Unit tests for the HTTP notification provider clients."""

import unittest
import tempfile
import shutil
import os
import sys
from unittest.mock import Mock

import requests

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from deepstack_trigger.clients.pushbullet import ALL_DEVICES, PushbulletClient
from deepstack_trigger.clients.pushover import PushoverClient
from deepstack_trigger.clients.telegram import TelegramClient
from deepstack_trigger.clients.web_request import WebRequestClient


def ok_response(body=None):
    response = Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = body or {}
    return response


class ClientTestCase(unittest.TestCase):

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.image = os.path.join(self.test_dir, "Dog.jpg")
        with open(self.image, "wb") as f:
            f.write(b"image")
        self.session = Mock()
        self.session.post.return_value = ok_response()
        self.session.get.return_value = ok_response()

    def tearDown(self):
        shutil.rmtree(self.test_dir, ignore_errors=True)


class TestTelegramClient(ClientTestCase):
    """Test cases for TelegramClient."""

    def test_send_photo(self):
        client = TelegramClient("bot-token", session=self.session)

        self.assertTrue(client.send("123", "Dog", self.image))

        url = self.session.post.call_args[0][0]
        kwargs = self.session.post.call_args[1]
        self.assertEqual(url, "https://api.telegram.org/botbot-token/sendPhoto")
        self.assertEqual(kwargs["data"], {"chat_id": "123", "caption": "Dog"})
        self.assertIn("photo", kwargs["files"])

    def test_send_text_without_attachment(self):
        client = TelegramClient("bot-token", session=self.session)

        self.assertTrue(client.send("123", "Dog"))

        self.assertTrue(self.session.post.call_args[0][0].endswith("/sendMessage"))
        self.assertEqual(self.session.post.call_args[1]["data"], {"chat_id": "123", "text": "Dog"})

    def test_failures_return_false(self):
        client = TelegramClient("bot-token", session=self.session)
        self.session.post.side_effect = requests.ConnectionError("refused")

        self.assertFalse(client.send("123", "Dog", self.image))
        self.assertFalse(client.send("123", "Dog", os.path.join(self.test_dir, "missing.jpg")))


class TestPushoverClient(ClientTestCase):
    """Test cases for PushoverClient."""

    def test_send_with_attachment_and_sound(self):
        client = PushoverClient("api-key", session=self.session)

        self.assertTrue(client.send("user-key", "Dog", self.image, sound="siren"))

        url = self.session.post.call_args[0][0]
        kwargs = self.session.post.call_args[1]
        self.assertEqual(url, "https://api.pushover.net/1/messages.json")
        self.assertEqual(kwargs["data"], {"token": "api-key", "user": "user-key", "message": "Dog", "sound": "siren"})
        self.assertEqual(kwargs["files"]["attachment"][0], "Dog.jpg")

    def test_http_error_returns_false(self):
        client = PushoverClient("api-key", session=self.session)
        response = ok_response()
        response.raise_for_status.side_effect = requests.HTTPError("400 Bad Request")
        self.session.post.return_value = response

        self.assertFalse(client.send("user-key", "Dog"))


class TestPushbulletClient(ClientTestCase):
    """Test cases for PushbulletClient."""

    def test_file_push_uploads_first(self):
        upload = {
            "upload_url": "https://upload.pushbullet.com/abc",
            "file_name": "Dog.jpg",
            "file_type": "image/jpeg",
            "file_url": "https://dl.pushbullet.com/abc/Dog.jpg",
        }
        self.session.post.side_effect = [ok_response(upload), ok_response(), ok_response()]
        client = PushbulletClient("o.token", session=self.session)

        self.assertTrue(client.send(ALL_DEVICES, "Dog seen", self.image, title="Dog"))

        urls = [c[0][0] for c in self.session.post.call_args_list]
        self.assertEqual(urls, [
            "https://api.pushbullet.com/v2/upload-request",
            "https://upload.pushbullet.com/abc",
            "https://api.pushbullet.com/v2/pushes",
        ])
        push = self.session.post.call_args[1]["json"]
        self.assertEqual(push["type"], "file")
        self.assertEqual(push["file_url"], upload["file_url"])
        self.assertEqual(push["title"], "Dog")
        self.assertEqual(push["body"], "Dog seen")
        self.assertNotIn("device_iden", push)
        self.assertEqual(self.session.post.call_args[1]["headers"], {"Access-Token": "o.token"})

    def test_note_push_to_device(self):
        client = PushbulletClient("o.token", session=self.session)

        self.assertTrue(client.send("device-1", "Dog seen"))

        push = self.session.post.call_args[1]["json"]
        self.assertEqual(push["type"], "note")
        self.assertEqual(push["device_iden"], "device-1")

    def test_bad_upload_response_returns_false(self):
        self.session.post.return_value = ok_response({"unexpected": True})
        client = PushbulletClient("o.token", session=self.session)

        self.assertFalse(client.send(ALL_DEVICES, "Dog seen", self.image))


class TestWebRequestClient(ClientTestCase):
    """Test cases for WebRequestClient."""

    def test_get(self):
        client = WebRequestClient(session=self.session, timeout=3)

        self.assertTrue(client.send("http://hub/motion"))
        self.session.get.assert_called_once_with("http://hub/motion", timeout=3)

    def test_failure_returns_false(self):
        self.session.get.side_effect = requests.Timeout("slow")
        client = WebRequestClient(session=self.session)

        self.assertFalse(client.send("http://hub/motion"))


if __name__ == '__main__':
    unittest.main()
