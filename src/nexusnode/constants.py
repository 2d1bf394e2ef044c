"""Static values shared across nexusnode services."""

SCRIPT_MODE = 0o755
FILE_MODE = 0o644

GIGABYTE = 1024 ** 3

BASE_PACKAGES = ("curl", "ca-certificates", "libssl-dev", "build-essential")
NATIVE_ENGINE_PACKAGE = "docker.io"
CONFLICTING_PACKAGES = (
    "docker.io",
    "docker-doc",
    "docker-compose",
    "docker-compose-v2",
    "podman-docker",
    "containerd",
    "runc",
)
VENDOR_ENGINE_PACKAGES = (
    "docker-ce",
    "docker-ce-cli",
    "containerd.io",
    "docker-buildx-plugin",
    "docker-compose-plugin",
)
VENDOR_REPO_BASE_URL = "https://download.docker.com/linux"
VENDOR_KEYRING_PATH = "/etc/apt/keyrings/docker.asc"
VENDOR_SOURCES_PATH = "/etc/apt/sources.list.d/docker.list"
ENGINE_GROUP = "docker"

PACKAGE_LOCK_FILES = (
    "/var/lib/dpkg/lock-frontend",
    "/var/lib/dpkg/lock",
    "/var/lib/apt/lists/lock",
)

IMAGE_RUNTIME_PACKAGES = (
    "curl",
    "ca-certificates",
    "libssl-dev",
    "python3",
    "python3-click",
    "python3-rich",
    "python3-requests",
    "python3-yaml",
)
CONTAINER_PACKAGE_ROOT = "/opt/nexusnode"

ENV_NODE_ID_FILE = "NEXUS_NODE_ID_FILE"
ENV_BINARY = "NEXUS_BINARY"
ENV_PERSIST = "NEXUS_PERSIST"
