# =============================================================================
# Inner Voice - Server Package
# =============================================================================
# This package contains the FastAPI application that runs the observer
# pipeline and exposes its session state to the page.
# =============================================================================
