"""Pain point to article generation service."""
