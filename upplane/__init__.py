"""User-plane topology, UPF selection, UE IP address pools and UE bookkeeping for a 5G SMF."""

__version__ = "0.1.0"