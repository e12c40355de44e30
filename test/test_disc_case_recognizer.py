import asyncio
import sys
import tempfile
import unittest
from pathlib import Path
from unittest import mock

_BACKEND_ROOT = Path(__file__).resolve().parents[1] / "backend"
if str(_BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(_BACKEND_ROOT))

from domain.collection import VisionNotConfiguredError
from infrastructure.vision.claude_vision_client import ClaudeVisionClient, extract_json_object, media_type_for
from infrastructure.vision.disc_case_recognizer import DiscCaseRecognizer, parse_disc_case_reply


class TestParseDiscCaseReply(unittest.TestCase):
    def test_reads_array_wrapped_in_prose(self) -> None:
        reply = (
            "Here is what I can see:\n"
            '[{"title": "Alien", "format": "Blu-ray", "releaseDate": "1979", "confidence": 0.93},'
            ' {"title": "Heat"}]\nLet me know if you need more.'
        )

        movies = parse_disc_case_reply(reply)

        self.assertEqual([m.title for m in movies], ["Alien", "Heat"])
        self.assertEqual(movies[0].format, "Blu-ray")
        self.assertEqual(movies[0].release_date, "1979")
        self.assertAlmostEqual(movies[0].confidence, 0.93)
        self.assertEqual(movies[1].format, "DVD")
        self.assertEqual(movies[1].confidence, 0.5)

    def test_empty_or_malformed_replies_yield_nothing(self) -> None:
        self.assertEqual(parse_disc_case_reply("[]"), [])
        self.assertEqual(parse_disc_case_reply("I can't see any movies."), [])
        self.assertEqual(parse_disc_case_reply("[{title: Alien}]"), [])
        self.assertEqual(parse_disc_case_reply('[{"title": "  "}, "Alien"]'), [])


class TestVisionClientHelpers(unittest.TestCase):
    def test_media_type_defaults_to_jpeg(self) -> None:
        self.assertEqual(media_type_for(Path("a.PNG")), "image/png")
        self.assertEqual(media_type_for(Path("a.webp")), "image/webp")
        self.assertEqual(media_type_for(Path("a.jpg")), "image/jpeg")
        self.assertEqual(media_type_for(Path("a.heic")), "image/jpeg")

    def test_extract_json_object(self) -> None:
        self.assertEqual(
            extract_json_object('Sure! {"barcode": "012345678905", "type": "UPC-A"}'),
            {"barcode": "012345678905", "type": "UPC-A"},
        )
        self.assertIsNone(extract_json_object("no json here"))


class TestDiscCaseRecognizer(unittest.IsolatedAsyncioTestCase):
    async def test_unconfigured_client_raises_before_any_request(self) -> None:
        client = ClaudeVisionClient(api_key="")
        recognizer = DiscCaseRecognizer(client)
        self.assertFalse(recognizer.is_configured())

        with tempfile.TemporaryDirectory() as tmp:
            image = Path(tmp) / "shelf.jpg"
            image.write_bytes(b"\xff\xd8")
            with self.assertRaises(VisionNotConfiguredError):
                await recognizer.identify_movies_from_photo(image)
        await client.close()

    async def test_reply_is_parsed_into_candidates(self) -> None:
        class _FakeClient:
            def is_configured(self) -> bool:
                return True

            async def ask_about_image(self, image_path, prompt, max_tokens=None):
                self.prompt = prompt
                return '[{"title": "The Matrix", "format": "4K Ultra HD", "confidence": 0.99}]'

        client = _FakeClient()
        movies = await DiscCaseRecognizer(client).identify_movies_from_photo(Path("shelf.jpg"))

        self.assertEqual(movies[0].title, "The Matrix")
        self.assertEqual(movies[0].format, "4K Ultra HD")
        self.assertIn("JSON array", client.prompt)

class _FakeResponse:
    status = 200

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def json(self, content_type=None):
        return {"content": [{"type": "text", "text": "[{\"title\": \"Alien\"}]"}]}


class _FakeSession:
    closed = False

    def __init__(self) -> None:
        self.payloads: list[dict] = []

    def post(self, url, *, json, headers):
        self.payloads.append(json)
        return _FakeResponse()


class TestClaudeVisionClientRequest(unittest.IsolatedAsyncioTestCase):
    async def test_image_is_read_off_the_event_loop(self) -> None:
        client = ClaudeVisionClient(api_key="test-key")
        session = _FakeSession()
        client._session = session
        real_to_thread = asyncio.to_thread
        offloaded: list = []

        async def _spy(func, *args, **kwargs):
            offloaded.append(func)
            return await real_to_thread(func, *args, **kwargs)

        with tempfile.TemporaryDirectory() as tmp:
            image = Path(tmp) / "shelf.png"
            image.write_bytes(b"\x89PNG")
            with mock.patch("infrastructure.vision.claude_vision_client.asyncio.to_thread", _spy):
                reply = await client.ask_about_image(image, "list the titles")

        self.assertEqual(reply, '[{"title": "Alien"}]')
        self.assertEqual([getattr(f, "__name__", "") for f in offloaded], ["read_bytes"])
        image_block = session.payloads[0]["messages"][0]["content"][0]
        self.assertEqual(image_block["source"]["media_type"], "image/png")
        self.assertEqual(image_block["source"]["data"], "iVBORw==")



if __name__ == "__main__":
    unittest.main()
