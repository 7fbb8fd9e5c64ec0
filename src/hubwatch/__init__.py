"""hubwatch — live serial-sensor telemetry for networked hubs."""

__version__ = "0.3.0"
