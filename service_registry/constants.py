# Service Registry Constants
# All magic numbers and strings are defined here for maintainability

# HTTP Status Codes
HTTP_OK = 200
HTTP_CREATED = 201
HTTP_BAD_REQUEST = 400
HTTP_NOT_FOUND = 404
HTTP_INTERNAL_SERVER_ERROR = 500

# API Endpoints
HEALTH_ENDPOINT = "/health"
REGISTER_ENDPOINT = "/register"
DISCOVER_ENDPOINT = "/discover"
UNREGISTER_ENDPOINT = "/unregister"
SERVICES_ENDPOINT = "/services"
METRICS_ENDPOINT = "/metrics"

# Instance Status Values
STATUS_RUNNING = "RUNNING"
STATUS_DOWN = "DOWN"

# Reaper Policies
POLICY_MARK_DOWN = "mark_down"
POLICY_EVICT = "evict"

# Addressing Modes
ADDRESSING_URL = "url"
ADDRESSING_IP_PORT = "ip_port"
ALLOWED_URL_SCHEMES = ("http", "https")
FORWARDED_FOR_HEADER = "X-Forwarded-For"

# Default Values
DEFAULT_REGISTRY_URL = "http://service-registry:3009"
DEFAULT_HEARTBEAT_INTERVAL = 5
DEFAULT_CLIENT_TIMEOUT_SECONDS = 5

# Error Messages
ERROR_REGISTER_FIELDS_REQUIRED = "Service name, version, and URL are required."
ERROR_UNREGISTER_FIELDS_REQUIRED = (
    "Service name, version, and URL are required to unregister."
)
ERROR_INVALID_URL = "URL must be an absolute http(s) URL."
ERROR_PORT_REQUIRED = "Service name, version, and port are required."
ERROR_CLIENT_ADDRESS_UNKNOWN = "Unable to determine client address."
ERROR_SERVICE_NOT_FOUND = "Service not found."
ERROR_VERSION_NOT_FOUND = "Service version not found."
ERROR_NO_HEALTHY_INSTANCE = "No running instances found for this service version."
ERROR_INSTANCE_NOT_FOUND = "Specific instance not found."
ERROR_INVALID_REQUEST = "Invalid request body."

# Success Messages
SUCCESS_REGISTERED = "New instance registered successfully."
SUCCESS_HEARTBEAT = "Heartbeat for instance received."
SUCCESS_UNREGISTERED = "Instance unregistered successfully."

# Log Messages
LOG_INSTANCE_REGISTERED = "Registered new instance: {}@{} at {}"
LOG_INSTANCE_HEARTBEAT = "Heartbeat for instance: {}@{} at {}"
LOG_INSTANCE_REVIVED = "Service instance revived: {}@{} at {}"
LOG_INSTANCE_MARKED_DOWN = "Instance timed out. Marking as DOWN: {}@{} at {}"
LOG_INSTANCE_EVICTED = "Instance timed out. Evicting: {}@{} at {}"
LOG_INSTANCE_UNREGISTERED = "Unregistered instance: {}@{} at {}"
LOG_REAPER_STARTED = "Reaper started with {}s interval, {}s timeout, policy {}"
LOG_REAPER_STOPPED = "Reaper stopped"
LOG_HEARTBEAT_LOOP_STARTED = "Started heartbeat loop with {}s interval"
LOG_HEARTBEAT_LOOP_STOPPED = "Stopped heartbeat loop"

# Retry Configuration
RETRY_DELAY_SECONDS = 5
HEARTBEAT_RETRY_DELAY = 5
