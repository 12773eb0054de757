# src/nodekeeper/core/config.py

import logging
import os
from datetime import timedelta

from dotenv import load_dotenv

from nodekeeper.utils.date_utils import parse_duration

# Load environment variables from a .env file located in the project root
dotenv_path = os.path.join(os.path.dirname(__file__), "..", "..", "..", ".env")
load_dotenv(dotenv_path=dotenv_path)


class Config:
    """
    Handles the application's configuration by loading values from environment variables.
    """

    # --- Logging variables ---
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # --- Controller concurrency ---
    HASH_MAX_CONCURRENT_RECONCILES = int(os.getenv("HASH_MAX_CONCURRENT_RECONCILES", "10"))
    REGISTRATION_MAX_CONCURRENT_RECONCILES = int(os.getenv("REGISTRATION_MAX_CONCURRENT_RECONCILES", "10"))
    GC_MAX_CONCURRENT = int(os.getenv("GC_MAX_CONCURRENT", "20"))

    # --- Durations (Prometheus-style strings: '10s', '2m', '24h') ---
    GC_CONSISTENCY_WINDOW_STR = os.getenv("GC_CONSISTENCY_WINDOW", "10s")
    GC_INTERVAL_STR = os.getenv("GC_INTERVAL", "2m")
    ALLOCATABLE_CACHE_TTL_STR = os.getenv("ALLOCATABLE_CACHE_TTL", "24h")
    RESYNC_INTERVAL_STR = os.getenv("RESYNC_INTERVAL", "1m")

    # --- Cluster access; empty means the kubeconfig's current context ---
    KUBE_CONTEXT = os.getenv("KUBE_CONTEXT") or None

    # --- Cloud provider plugin, as 'package.module:ClassName' ---
    CLOUD_PROVIDER = os.getenv("CLOUD_PROVIDER", "nodekeeper.cloudprovider.fake:FakeCloudProvider")

    # --- Telemetry ---
    OTEL_EXPORTER_OTLP_ENDPOINT = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4318")
    TELEMETRY_ENABLED = os.getenv("TELEMETRY_ENABLED", "False").lower() in (
        "true",
        "1",
        "t",
        "y",
        "yes",
    )

    # Durations are resolved at access time so a changed environment is picked
    # up by components created afterwards.
    @property
    def GC_CONSISTENCY_WINDOW(self) -> timedelta:
        return parse_duration(os.getenv("GC_CONSISTENCY_WINDOW", self.GC_CONSISTENCY_WINDOW_STR))

    @property
    def GC_INTERVAL(self) -> timedelta:
        return parse_duration(os.getenv("GC_INTERVAL", self.GC_INTERVAL_STR))

    @property
    def ALLOCATABLE_CACHE_TTL(self) -> timedelta:
        return parse_duration(os.getenv("ALLOCATABLE_CACHE_TTL", self.ALLOCATABLE_CACHE_TTL_STR))

    @property
    def RESYNC_INTERVAL(self) -> timedelta:
        return parse_duration(os.getenv("RESYNC_INTERVAL", self.RESYNC_INTERVAL_STR))

    def validate_instance(self):
        for name in (
            "HASH_MAX_CONCURRENT_RECONCILES",
            "REGISTRATION_MAX_CONCURRENT_RECONCILES",
            "GC_MAX_CONCURRENT",
        ):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1.")
        # Each access parses the string and raises ValueError when malformed
        self.GC_CONSISTENCY_WINDOW
        self.GC_INTERVAL
        self.RESYNC_INTERVAL
        if self.ALLOCATABLE_CACHE_TTL <= timedelta(0):
            raise ValueError("ALLOCATABLE_CACHE_TTL must be positive.")
        if ":" not in self.CLOUD_PROVIDER:
            logging.getLogger(__name__).warning(
                "CLOUD_PROVIDER '%s' is not in 'module:ClassName' form.", self.CLOUD_PROVIDER
            )


# Instantiate the config to be imported by other modules
config = Config()
config.validate_instance()
