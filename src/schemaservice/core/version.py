from importlib import metadata

try:
    SCHEMASERVICE_VERSION = metadata.version("schemaservice")
except metadata.PackageNotFoundError:
    # Local run without installation
    SCHEMASERVICE_VERSION = "dev"
