"""
Abstract base client for LLM inference.

Defines the interface that completion-provider clients must adhere to. This
abstraction allows swapping providers without changing the classifier.
"""

from abc import ABC, abstractmethod
import structlog

from classification_proxy.models.llm_models import LLMGenerationRequest, LLMGenerationResponse


logger = structlog.get_logger(__name__)


class BaseLLMClient(ABC):
    """
    Abstract base class for LLM inference clients.

    Responsibilities:
    - Send generation requests to the provider
    - Parse responses into LLMGenerationResponse
    - Map transport and protocol failures to LLMClientError subclasses

    Does NOT handle:
    - Prompt construction (that's PromptBuilder's job)
    - Label parsing or fail-open policy (that's the Classifier's job)
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = 30.0,
        max_retries: int = 1,
    ):
        """
        Initialize base client.

        Args:
            endpoint: Full URL of the completion endpoint
            timeout: Request timeout in seconds
            max_retries: Total attempts for connection-level failures
        """
        self.endpoint = endpoint.rstrip('/')
        self.timeout = timeout
        self.max_retries = max(1, max_retries)

        logger.info(
            "Initialized LLM client",
            client_class=self.__class__.__name__,
            endpoint=self.endpoint,
            timeout=timeout,
            max_retries=self.max_retries
        )

    @abstractmethod
    async def generate(self, request: LLMGenerationRequest) -> LLMGenerationResponse:
        """
        Generate a completion.

        Raises:
            LLMCredentialError: No credential configured
            LLMTimeoutError: Request exceeded timeout
            LLMConnectionError: Network errors
            LLMGenerationError: Non-success HTTP status
            LLMResponseFormatError: Unusable response body
        """

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the provider is reachable.

        Should NOT raise exceptions - return False on error.
        """

    async def close(self):
        """
        Close client connections and cleanup resources.

        Subclasses should override if they hold persistent connections.
        """
        logger.debug("Closing LLM client", client_class=self.__class__.__name__)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"endpoint={self.endpoint}, "
            f"timeout={self.timeout}s)"
        )
