"""Set up the client configuration."""

from pathlib import Path

from pydantic_yaml import parse_yaml_file_as

from .models import ClientConfig

__all__ = ["data_path", "client_config", "load_config"]

data_path = Path(__file__).parent


def load_config(path: Path = data_path / "client.yaml") -> ClientConfig:
    """Load the client configuration from a YAML file."""
    return parse_yaml_file_as(ClientConfig, path)


client_config = load_config()
