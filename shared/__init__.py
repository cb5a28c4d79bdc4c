# =============================================================================
# Inner Voice - Shared Package
# =============================================================================
# Error taxonomy and HTTP schemas used by both the observer and the server.
# =============================================================================
