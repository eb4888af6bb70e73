"""Application-level constants for compiler-ai.

This module keeps only cross-cutting identity, endpoint and key constants.
"""

# ============================================================================
# Application identity
# ============================================================================

APP_NAME = "compiler_ai"

# ============================================================================
# Backend endpoints
# ============================================================================

DEFAULT_BASE_URL = "https://backend.compiler.inc"

AUTH_ENDPOINT = "/v1/apps/{app_id}/end-users/apple"
FUNCTION_CALL_ENDPOINT = "/v1/function-call/{app_id}"
MODEL_CALL_ENDPOINT = "/v1/apps/{app_id}/end-users/model-call"
MODEL_CALL_STREAM_ENDPOINT = "/v1/apps/{app_id}/end-users/model-call/stream"

CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_EVENT_STREAM = "text/event-stream"

# ============================================================================
# Secret store keys: (service, account)
# ============================================================================

IDENTITY_TOKEN_SERVICE = "apple-id-token"
ACCESS_TOKEN_SERVICE = "access-token"
TOKEN_ACCOUNT = "user"

# ============================================================================
# Streaming
# ============================================================================

SSE_DATA_MARKER = "data:"
SSE_DONE_SENTINEL = "[DONE]"

# Appended to the last user message when callers pass app state.
APP_STATE_SUFFIX = "\n\nThe current app state is: {state}"
