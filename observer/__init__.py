# =============================================================================
# Inner Voice - Observer Package
# =============================================================================
# This package contains the polling pipeline: frame capture, scene analysis
# through a remote vision model, keyword reaction, speech synthesis and the
# best-effort vector store mirror.
# =============================================================================
