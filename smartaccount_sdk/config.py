"""
Network configuration for the SmartAccount SDK.
"""
import json
import logging
import os
import importlib.resources
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class NetworkConfig:
    """
    Named network settings loaded from the packaged ``networks.json``.

    Each network carries its ``chainId`` and the ``entryPoint`` address
    operation hashes are bound to.
    """
    _networks_cache: Optional[Dict[str, Dict[str, Any]]] = None

    @classmethod
    def load_networks(cls) -> Dict[str, Dict[str, Any]]:
        """
        Load all network configurations (cached after first call).

        Returns:
            Mapping of network name to its configuration
        """
        if cls._networks_cache is not None:
            return cls._networks_cache

        resource = importlib.resources.files("smartaccount_sdk").joinpath("networks.json")
        with resource.open("r", encoding="utf-8") as f:
            cls._networks_cache = json.load(f)
        logger.debug(f"Loaded {len(cls._networks_cache)} network configurations")
        return cls._networks_cache

    @classmethod
    def get_network(cls, network: str) -> Dict[str, Any]:
        """
        Get configuration for a named network.

        Raises:
            ValueError: If the network is not configured
        """
        networks = cls.load_networks()
        if network not in networks:
            available = ", ".join(sorted(networks))
            raise ValueError(f"Unknown network '{network}'. Available networks: {available}")
        return networks[network]

    @classmethod
    def get_chain_id(cls, network: str) -> int:
        return int(cls.get_network(network)["chainId"])

    @classmethod
    def get_entry_point_address(cls, network: str, override: Optional[str] = None) -> str:
        """
        Resolve the EntryPoint address for a network.

        Precedence: ``override``, then ``<NETWORK>_ENTRY_POINT`` from the
        environment (dashes become underscores), then the config file.
        """
        if override:
            return override

        env_var = f"{network.upper().replace('-', '_')}_ENTRY_POINT"
        env_value = os.environ.get(env_var)
        if env_value:
            logger.debug(f"Using EntryPoint from {env_var}")
            return env_value

        return cls.get_network(network)["entryPoint"]
