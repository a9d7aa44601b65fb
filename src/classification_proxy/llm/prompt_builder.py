"""
Prompt builder for batch classification requests.

Responsible for:
- Loading and rendering Jinja2 templates (system + user prompts)
- Normalizing each item onto exactly one ``hash|content`` line
- Sizing the output token budget to the batch
- Constructing the complete LLMGenerationRequest
"""

from pathlib import Path
from typing import Optional, Sequence

from jinja2 import Environment, FileSystemLoader
import structlog

from classification_proxy.llm.text_utils import collapse_whitespace, normalize_content
from classification_proxy.models.classification_models import ClassificationItem
from classification_proxy.models.llm_models import ChatMessage, LLMGenerationRequest


logger = structlog.get_logger(__name__)

DEFAULT_TEMPLATES_DIR = Path(__file__).parent / "templates"


class PromptBuilder:
    """
    Build chat-completion requests for a batch of items.

    The user prompt has one line per item in input order. Prompt line i
    corresponds to items[i]; the parser relies on that.
    """

    def __init__(
        self,
        templates_dir: Optional[Path] = None,
        model: str = "gpt-4-turbo",
        temperature: float = 0.0,
        seed: Optional[int] = 42,
        content_limit: int = 500,
        preference_limit: int = 1000,
        tokens_per_item: int = 10,
        min_output_tokens: int = 50,
    ):
        """
        Initialize prompt builder.

        Args:
            templates_dir: Directory with system_prompt.txt and
                user_prompt_template.txt (defaults to the packaged templates)
            model: Model name sent to the provider
            temperature: Sampling temperature (0 keeps labels reproducible)
            seed: Sampling seed sent to providers that support one (None omits it)
            content_limit: Max characters of each item sent to the model
            preference_limit: Max characters of the preference sent
            tokens_per_item: Output token allowance per item
            min_output_tokens: Floor for the output token budget
        """
        self.templates_dir = Path(templates_dir) if templates_dir else DEFAULT_TEMPLATES_DIR
        self.model = model
        self.temperature = temperature
        self.seed = seed
        self.content_limit = content_limit
        self.preference_limit = preference_limit
        self.tokens_per_item = tokens_per_item
        self.min_output_tokens = min_output_tokens

        self.jinja_env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
            autoescape=False  # We're generating prompts, not HTML
        )

        try:
            self.system_template = self.jinja_env.get_template("system_prompt.txt")
            self.user_template = self.jinja_env.get_template("user_prompt_template.txt")
            logger.info("Loaded prompt templates", templates_dir=str(self.templates_dir))
        except Exception as e:
            logger.error("Failed to load prompt templates", error=str(e))
            raise

    def max_tokens_for(self, count: int) -> int:
        return max(self.min_output_tokens, count * self.tokens_per_item)

    def build_system_prompt(self, preference: str, count: int) -> str:
        preference = collapse_whitespace(preference).replace('"', "'")[: self.preference_limit]
        return self.system_template.render(preference=preference, count=count).strip()

    def build_user_prompt(self, items: Sequence[ClassificationItem]) -> str:
        lines = [
            {
                "hash": collapse_whitespace(item.hash),
                "content": normalize_content(item.content, self.content_limit),
            }
            for item in items
        ]
        return self.user_template.render(items=lines).strip()

    def build_request(
        self, preference: str, items: Sequence[ClassificationItem]
    ) -> LLMGenerationRequest:
        """Build the full generation request for one batch."""
        request = LLMGenerationRequest(
            messages=[
                ChatMessage(role="system", content=self.build_system_prompt(preference, len(items))),
                ChatMessage(role="user", content=self.build_user_prompt(items)),
            ],
            model=self.model,
            temperature=self.temperature,
            seed=self.seed,
            max_tokens=self.max_tokens_for(len(items)),
        )

        logger.debug(
            "Built classification prompt",
            items=len(items),
            max_tokens=request.max_tokens,
        )
        return request
