#setup: python -m venv .venv
#setup: source .venv/bin/activate   # (windows: .venv\Scripts\activate)
#setup: pip install -e ".[test]"
#setup: python -m forecaster [config.json]

import sys

from loguru import logger

from forecaster.app import create_app
from forecaster.config import ConfigurationError, load_config


def main() -> None:
    try:
        config = load_config(sys.argv[1] if len(sys.argv) > 1 else None)
    except ConfigurationError as e:
        logger.error(f"Configuration file error: {e}")
        sys.exit(1)

    app = create_app(config)
    app.run(host=config.host, port=config.port, debug=True)


if __name__ == "__main__":
    main()
