"""Tests for decoding model answers into JSON."""

import unittest

from app.services.llm_json import PayloadKind, decode_llm_json


class TestDecodeLlmJson(unittest.TestCase):
    """Strict, fenced and unparsable answers."""

    def test_strict(self) -> None:
        decoded = decode_llm_json('  {"analysis": []}  ')
        self.assertEqual(decoded.kind, PayloadKind.STRICT)
        self.assertEqual(decoded.data, {"analysis": []})
        self.assertTrue(decoded.ok)

    def test_fenced_with_language(self) -> None:
        text = 'Here you go:\n```json\n{"analysis": [{"index": 1}]}\n```\nThanks'
        decoded = decode_llm_json(text)
        self.assertEqual(decoded.kind, PayloadKind.FENCED)
        self.assertEqual(decoded.data["analysis"][0]["index"], 1)

    def test_fenced_without_language(self) -> None:
        decoded = decode_llm_json("```\n[1, 2]\n```")
        self.assertEqual(decoded.kind, PayloadKind.FENCED)
        self.assertEqual(decoded.data, [1, 2])

    def test_broken_fence_is_unparsable(self) -> None:
        """A fence wins even when the text around it would parse."""
        decoded = decode_llm_json("```json\n{not json}\n```")
        self.assertEqual(decoded.kind, PayloadKind.UNPARSABLE)
        self.assertIsNone(decoded.data)
        self.assertFalse(decoded.ok)

    def test_prose_is_unparsable(self) -> None:
        self.assertEqual(decode_llm_json("I could not find prices.").kind, PayloadKind.UNPARSABLE)

    def test_empty(self) -> None:
        self.assertEqual(decode_llm_json("").kind, PayloadKind.UNPARSABLE)


if __name__ == "__main__":
    unittest.main()
