from prometheus_client import CollectorRegistry

# Private registry so tests and multiple app instances do not collide with
# the process-wide default registry.
REGISTRY = CollectorRegistry(auto_describe=True)
