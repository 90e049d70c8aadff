"""Base model client defining the generative-text contract."""

from abc import ABC, abstractmethod

from repograde.models.model_evaluation import ModelResponse
from repograde.models.model_settings import GradingSettings


class ModelClient(ABC):
    """Abstract base class for generative-text backends.

    One prompt in, one normalized response out. Implementations map
    transport failures and non-success responses to ModelUnavailableError
    and report the backend's finish reason unchanged.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider identifier (e.g., 'gemini')."""
        ...

    @abstractmethod
    async def generate(self, prompt: str, settings: GradingSettings) -> ModelResponse:
        """Run a single-shot completion.

        Args:
            prompt: Full prompt text.
            settings: Model name, temperature and output cap.

        Returns:
            ModelResponse with text and finish reason.

        Raises:
            ModelUnavailableError: On transport failure or non-success response.
        """
        ...

    async def aclose(self) -> None:
        """Release any held connections."""
        return None
