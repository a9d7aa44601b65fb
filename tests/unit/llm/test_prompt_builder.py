"""Unit tests for PromptBuilder."""

import pytest
from jinja2 import TemplateNotFound

from classification_proxy.llm.prompt_builder import DEFAULT_TEMPLATES_DIR, PromptBuilder
from classification_proxy.models.classification_models import ClassificationItem


def test_packaged_templates_exist():
    assert (DEFAULT_TEMPLATES_DIR / "system_prompt.txt").is_file()
    assert (DEFAULT_TEMPLATES_DIR / "user_prompt_template.txt").is_file()


def test_missing_templates_dir_raises(tmp_path):
    with pytest.raises(TemplateNotFound):
        PromptBuilder(templates_dir=tmp_path)


class TestSystemPrompt:
    def test_embeds_preference_and_count(self, prompt_builder):
        prompt = prompt_builder.build_system_prompt("no spoilers", 7)

        assert '"no spoilers"' in prompt
        assert "exactly 7 lines for 7 posts" in prompt
        assert "ALLOW or BLOCK" in prompt

    def test_preference_is_single_line_without_double_quotes(self, prompt_builder):
        prompt = prompt_builder.build_system_prompt('hide "movie"\nspoilers', 1)

        assert "\"hide 'movie' spoilers\"" in prompt

    def test_preference_is_truncated(self):
        builder = PromptBuilder(preference_limit=10)

        prompt = builder.build_system_prompt("x" * 50, 1)

        assert '"' + "x" * 10 + '"' in prompt


class TestUserPrompt:
    def test_one_line_per_item(self, prompt_builder, make_items):
        prompt = prompt_builder.build_user_prompt(make_items(3))

        assert prompt.splitlines() == [
            "hash00000|some post text 0",
            "hash00001|some post text 1",
            "hash00002|some post text 2",
        ]

    def test_newlines_in_content_are_collapsed(self, prompt_builder):
        items = [ClassificationItem(hash="abcde", content="line one\n\nline\ttwo")]

        assert prompt_builder.build_user_prompt(items) == "abcde|line one line two"

    def test_content_is_truncated(self):
        builder = PromptBuilder(content_limit=5)
        items = [ClassificationItem(hash="abcde", content="0123456789")]

        assert builder.build_user_prompt(items) == "abcde|01234"


class TestBuildRequest:
    def test_request_shape(self, prompt_builder, make_items):
        request = prompt_builder.build_request("no spoilers", make_items(2))

        assert request.model == "test-model"
        assert request.temperature == 0.0
        assert [m.role for m in request.messages] == ["system", "user"]
        assert request.seed == 42

    def test_seed_can_be_disabled(self, make_items):
        builder = PromptBuilder(model="test-model", seed=None)

        assert builder.build_request("no spoilers", make_items(1)).seed is None

    @pytest.mark.parametrize("count, expected", [(1, 50), (5, 50), (6, 60), (50, 500)])
    def test_max_tokens_scales_with_batch(self, prompt_builder, count, expected):
        assert prompt_builder.max_tokens_for(count) == expected
