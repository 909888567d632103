"""Machine-translation provider credentials.

Provider secrets are read from the environment only. Language documents may
name providers and priorities but never carry the credentials used here.
"""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class TranslationProviderSettings(IntegrationSettings):
    """Credentials and endpoints for external translation providers.

    Environment Variables:
        GOOGLE_TRANSLATE_API_KEY: Google Cloud Translation v2 API key
        GOOGLE_TRANSLATE_URL: Google Translation v2 base URL
        DEEPL_API_KEY: DeepL authentication key
        DEEPL_API_URL: DeepL base URL (free or pro endpoint)
        AZURE_TRANSLATOR_KEY: Azure Translator subscription key
        AZURE_TRANSLATOR_REGION: Azure Translator resource region
        AZURE_TRANSLATOR_URL: Azure Translator base URL

    Example:
        ```python
        settings = get_settings()
        if settings.translation_providers.DEEPL_API_KEY:
            ...
        ```
    """

    GOOGLE_TRANSLATE_API_KEY: str = Field(default="", alias="GOOGLE_TRANSLATE_API_KEY")
    GOOGLE_TRANSLATE_URL: str = Field(
        default="https://translation.googleapis.com/language/translate/v2",
        alias="GOOGLE_TRANSLATE_URL",
    )
    DEEPL_API_KEY: str = Field(default="", alias="DEEPL_API_KEY")
    DEEPL_API_URL: str = Field(
        default="https://api-free.deepl.com/v2", alias="DEEPL_API_URL"
    )
    AZURE_TRANSLATOR_KEY: str = Field(default="", alias="AZURE_TRANSLATOR_KEY")
    AZURE_TRANSLATOR_REGION: str = Field(
        default="global", alias="AZURE_TRANSLATOR_REGION"
    )
    AZURE_TRANSLATOR_URL: str = Field(
        default="https://api.cognitive.microsofttranslator.com",
        alias="AZURE_TRANSLATOR_URL",
    )

    def api_key_for(self, provider: str) -> str:
        """Return the configured API key for a provider name, or ''."""
        return {
            "google": self.GOOGLE_TRANSLATE_API_KEY,
            "deepl": self.DEEPL_API_KEY,
            "azure": self.AZURE_TRANSLATOR_KEY,
        }.get(provider, "")
