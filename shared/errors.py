# =============================================================================
# Inner Voice - Error Taxonomy
# =============================================================================
# Exceptions raised at the adapter boundaries (analysis, speech, vector store)
# and handled by the observer pipeline. None of them is allowed to escape a
# single capture tick.
# =============================================================================


class InnerVoiceError(Exception):
    """Base class for all Inner Voice errors."""


class ConfigurationError(InnerVoiceError):
    """
    A required setting (typically an API credential) is missing.

    Fatal to the named integration for the rest of the session, never to the
    process.

    Args:
        integration: Short name of the affected integration ("analysis", "speech").
        message:     Human-readable explanation shown to the user.
    """

    def __init__(self, integration: str, message: str):
        super().__init__(message)
        self.integration = integration


class UpstreamError(InnerVoiceError):
    """A remote endpoint (completion or speech) failed or was unreachable."""


class InvalidResponse(UpstreamError):
    """A remote endpoint answered, but without usable content."""


class BestEffortIntegrationError(InnerVoiceError):
    """An optional integration failed; it is disabled for the session."""
