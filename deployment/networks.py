from ape import networks

LOCAL_NETWORKS = ["local"]


def is_local_network() -> bool:
    """Returns True if the active provider is connected to a local development network."""
    return networks.provider.network.name in LOCAL_NETWORKS
