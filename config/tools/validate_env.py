# config/tools/validate_env.py

import sys           # for exit codes
from dataclasses import asdict
from pprint import pprint  # for structured printing

# make src discoverable if running as a script
from pathlib import Path
# __file__ is .../config/tools/validate_env.py
# parents[2] is the project root; append ROOT/src
PROJECT_ROOT = Path(__file__).resolve().parents[2]
sys.path.append(str(PROJECT_ROOT / "src"))

from env.loader import load_environment  # import our loader
from env.schema import ConfigError


def main() -> None:
    """Load and print the resolved bot configuration, failing fast on errors."""
    try:
        profile = load_environment()
    except ConfigError as e:
        print("Configuration validation FAILED:", file=sys.stderr)
        print(repr(e), file=sys.stderr)
        sys.exit(1)                          # non-zero exit: CI will mark as failed

    print("Configuration validation OK.")
    print(f"\nServer: {profile.server.host}:{profile.server.port} as {profile.server.username}")
    for name in ("ai", "movement", "reconnect", "chat", "health", "logging"):
        section = asdict(getattr(profile, name))
        if name == "ai" and section.get("api_key"):
            section["api_key"] = "***"       # never echo secrets
        print(f"\n{name}:")
        pprint(section)


if __name__ == "__main__":
    main()  # run main() only when script is executed directly
