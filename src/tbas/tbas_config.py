"""Interpreter configuration."""

from dataclasses import asdict, dataclass, fields
import json
import os


@dataclass
class TBASConfig:
    """
    Settings for a TBAS interpreter session.

    OPTIONBASE, OPTIONDEBUG and OPTIONTRACE change the live session values; NEW restores the
    index base from here.
    """
    debug: bool = False
    production: bool = True
    trace: bool = False
    index_base: int = 0
    memory_size: int = 65536
    max_recursion_depth: int = 1000
    prompt: str = "Ok"
    terminate_poll_interval: int = 1

    @classmethod
    def load(cls, path: str) -> "TBASConfig":
        """
        Load configuration from a JSON file, using defaults for missing keys.

        Args:
            path: Path to the settings file

        Returns:
            TBASConfig object with loaded values

        Raises:
            json.JSONDecodeError: If file contains invalid JSON
        """
        config = cls()
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        known = {f.name for f in fields(cls)}
        for key, value in data.items():
            if key in known:
                setattr(config, key, value)

        return config

    def save(self, path: str) -> None:
        """
        Save configuration to a JSON file.

        Args:
            path: Path to save the settings file

        Raises:
            OSError: If there's an issue creating the directory or writing the file
        """
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with open(path, 'w', encoding='utf-8') as f:
            json.dump(asdict(self), f, indent=4)
