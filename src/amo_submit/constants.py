"""
Constants and configuration values for amo-submit.

This module contains the default API endpoint, polling intervals and timeouts,
environment variable names and logging settings used throughout the application.
"""

# API endpoints
DEFAULT_API_URL_PREFIX = "https://addons.mozilla.org/api/v5/"
UPLOAD_PATH = "addons/upload/"
ADDON_PATH = "addons/addon/"

# JWT settings
JWT_ALGORITHM = "HS256"
DEFAULT_JWT_EXPIRES_IN = 60 * 5  # 5 minutes

# Polling intervals and timeouts (in seconds)
DEFAULT_VALIDATION_CHECK_INTERVAL = 1.0
DEFAULT_VALIDATION_CHECK_TIMEOUT = 300.0  # 5 minutes
DEFAULT_APPROVAL_CHECK_INTERVAL = 1.0
DEFAULT_APPROVAL_CHECK_TIMEOUT = 900.0  # 15 minutes

# Network settings
DEFAULT_REQUEST_TIMEOUT = 120
DEFAULT_CHUNK_SIZE = 8192
BYTES_PER_MEGABYTE = 1024 * 1024

# HTTP status boundaries used when interpreting API responses
HTTP_STATUS_INFORMATIONAL_MIN = 100
HTTP_STATUS_ERROR_THRESHOLD = 400
HTTP_STATUS_SERVER_ERROR_THRESHOLD = 500

# File status reported by the API once a file has been signed and approved
FILE_STATUS_PUBLIC = "public"

# Release channels
CHANNEL_LISTED = "listed"
CHANNEL_UNLISTED = "unlisted"
CHANNELS = (CHANNEL_LISTED, CHANNEL_UNLISTED)

# Downloaded artifact
SIGNED_FILE_NAME = "the.xpi"

# Configuration
APP_NAME = "amo-submit"
CONFIG_FILE_NAME = "config.yaml"
ENV_API_KEY = "API_KEY"
ENV_API_SECRET = "API_SECRET"
ENV_API_ENDPOINT = "API_ENDPOINT"
ENV_JWT_EXPIRES_IN = "AMO_JWT_EXPIRES_IN"
ENV_VALIDATION_CHECK_INTERVAL = "AMO_VALIDATION_CHECK_INTERVAL"
ENV_VALIDATION_CHECK_TIMEOUT = "AMO_VALIDATION_CHECK_TIMEOUT"
ENV_APPROVAL_CHECK_INTERVAL = "AMO_APPROVAL_CHECK_INTERVAL"
ENV_APPROVAL_CHECK_TIMEOUT = "AMO_APPROVAL_CHECK_TIMEOUT"
ENV_DOWNLOAD_DIR = "AMO_DOWNLOAD_DIR"

# Logging configuration
LOGGER_NAME = "amo_submit"
LOG_LEVEL_ENV_VAR = "AMO_SUBMIT_LOG_LEVEL"
LOG_FILE_NAME = "amo-submit.log"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5

# CLI messages
MSG_DONE = "Done!"
