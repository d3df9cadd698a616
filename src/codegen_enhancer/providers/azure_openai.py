"""Azure OpenAI provider - deployment-addressed chat completions."""

from typing import Optional

from openai import AsyncAzureOpenAI

from .openai_provider import OpenAIProvider
from ..config import LLMConfig, ProviderSettings


class AzureOpenAIProvider(OpenAIProvider):
    """
    Provider using ``openai.AsyncAzureOpenAI``.

    Requires: ``azureOpenai`` block with ``apiKey``, ``endpoint`` and
    ``deploymentName``. The deployment name is sent as the model.
    """

    name = "azure-openai"
    label = "Azure OpenAI"

    def __init__(self, config: LLMConfig, client: Optional[AsyncAzureOpenAI] = None, **kwargs):
        super().__init__(config, client=client)

    def _block(self) -> ProviderSettings:
        return self._require_block(self.config.azure_openai, self.label)

    def _model_name(self) -> str:
        return self.config.azure_openai.deployment_name

    def _create_client(self) -> AsyncAzureOpenAI:
        block = self.config.azure_openai
        return AsyncAzureOpenAI(
            api_key=block.api_key,
            azure_endpoint=block.endpoint,
            api_version=block.api_version,
            max_retries=0,
        )
