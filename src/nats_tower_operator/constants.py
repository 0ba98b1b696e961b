"""Constants for the NATS Tower Operator."""

# Label prefix
LABEL_PREFIX = "nats-tower.com"

# Labels
LABEL_SECRET = f"{LABEL_PREFIX}/nats-tower-secret"
LABEL_INSTALLATION = f"{LABEL_PREFIX}/nats-tower-installation"
LABEL_ACCOUNT = f"{LABEL_PREFIX}/nats-tower-account"
LABEL_CREDENTIAL_TYPE = f"{LABEL_PREFIX}/nats-tower-credential-type"
LABEL_APP_NAME = "app.kubernetes.io/name"

# Secret payload keys
SECRET_CREDENTIALS_KEY = "nats.creds"
SECRET_URLS_KEY = "URLS"
SECRET_ACCOUNT_NAME_KEY = "ACCOUNT_NAME"

# Credential types
CREDENTIAL_TYPE_USER = "user"
SUPPORTED_CREDENTIAL_TYPES = frozenset({CREDENTIAL_TYPE_USER})

# Watched resources (group/version/plural, core group left empty)
RESOURCE_POD = "v1/pods"
RESOURCE_SECRET = "v1/secrets"
RESOURCE_NACK_ACCOUNT = "jetstream.nats.io/v1beta2/accounts"

NACK_GROUP = "jetstream.nats.io"
NACK_VERSION = "v1beta2"
NACK_ACCOUNT_PLURAL = "accounts"
NACK_ACCOUNT_KIND = "Account"

# Component name used for events and field manager
COMPONENT = "nats-tower-operator"
FIELD_MANAGER = COMPONENT

# Controller
MAX_NUM_REQUEUES = 4
DEFAULT_WORKERS = 1

# Remote API
DEFAULT_REQUEST_TIMEOUT_SECONDS = 5.0
API_TOKEN_HEADER = "X-Token"

# Event types
EVENT_TYPE_NORMAL = "Normal"
EVENT_TYPE_WARNING = "Warning"

# Event reasons
EVENT_REASON_MISSING_INSTALLATION = "MissingInstallationLabel"
EVENT_REASON_DEFAULT_INSTALLATION = "DefaultInstallation"
EVENT_REASON_INVALID_INSTALLATION = "InvalidInstallationLabel"
EVENT_REASON_INVALID_CREDENTIAL_TYPE = "InvalidCredentialType"
EVENT_REASON_MISSING_ACCOUNT = "MissingAccountLabel"
EVENT_REASON_ACCESS_NOT_ALLOWED = "ErrorK8sAccessNotAllowed"
EVENT_REASON_CREATING_USER_AUTH_FAILED = "ErrorCreatingUserAuth"
EVENT_REASON_UPSERT_FAILED = "ErrorUpsertingSecret"
EVENT_REASON_SECRET_CREATED = "Created"
EVENT_REASON_SECRET_UPDATED = "Updated"
