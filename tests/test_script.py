"""Tests for refspan.script module."""
from refspan.script import classify, is_cjk


class TestClassify:
    def test_latin_text(self) -> None:
        assert classify("The quick brown fox") == "non_cjk"

    def test_single_cjk_character_is_enough(self) -> None:
        assert classify("mostly english with one 字") == "cjk"

    def test_hiragana_katakana(self) -> None:
        assert classify("ひらがな") == "cjk"
        assert classify("カタカナ") == "cjk"

    def test_halfwidth_katakana(self) -> None:
        assert classify("ｱｲ") == "cjk"

    def test_empty_is_non_cjk(self) -> None:
        assert classify("") == "non_cjk"
        assert classify(None) == "non_cjk"

    def test_is_cjk(self) -> None:
        assert is_cjk("学習")
        assert not is_cjk("learning")
