"""
Configuration for the repair image upload pipeline.

All endpoints, timeouts, and retry limits in one place.
Change here, not in business logic modules.
"""

import os

# --- API ---

API_BASE_URL: str = os.environ.get("GEARSYNC_API_BASE_URL", "https://your-api-base-url.com/api")
API_TIMEOUT_SECONDS: float = 10.0
CLIENT_PLATFORM: str = os.environ.get("GEARSYNC_PLATFORM", "android")

UPLOAD_ENDPOINT: str = "/upload-inspection-image/"
REPAIR_ENDPOINT: str = "/gear-repair/"

# --- Upload ---

# Per-attempt request timeout. Exceeding it is retryable and consumes one attempt.
UPLOAD_TIMEOUT_SECONDS: float = float(os.environ.get("UPLOAD_TIMEOUT_SECONDS", "120"))

UPLOAD_FILE_FIELD: str = "image"
UPLOAD_ENTITY_FIELD: str = "gearId"
DEFAULT_IMAGE_FILENAME: str = "image.jpg"
DEFAULT_IMAGE_TYPE: str = "image/jpeg"

# --- Retry ---

# Total attempts per image, first one included. Fixed per deployment, never adaptive.
# The mobile builds used 3 on Android and 2 on iOS; 3 is the safe upper bound.
UPLOAD_MAX_ATTEMPTS: int = int(os.environ.get("UPLOAD_MAX_ATTEMPTS", "3"))

# Linear backoff: wait attempt * RETRY_BASE_DELAY_SECONDS before the next attempt
RETRY_BASE_DELAY_SECONDS: float = float(os.environ.get("RETRY_BASE_DELAY_SECONDS", "2.0"))

# --- Locators ---

REMOTE_SCHEMES: tuple[str, ...] = ("http://", "https://")
