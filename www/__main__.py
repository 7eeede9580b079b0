"""Run the public site under uvicorn.

Examples:
  python -m www
  python -m www --env production --port 8080
"""

import argparse

import uvicorn

from www.config.loader import load_settings
from www.main import create_app


def main(argv=None):
    parser = argparse.ArgumentParser(prog="www", description="Serve the public site")
    parser.add_argument("--host", help="listen address (default: WWW_LISTEN_HOST)")
    parser.add_argument("--port", type=int, help="listen port (default: WWW_LISTEN_PORT)")
    parser.add_argument("--env", choices=["development", "production"], help="run mode")
    args = parser.parse_args(argv)

    overrides = {}
    if args.host:
        overrides["listen_host"] = args.host
    if args.port:
        overrides["listen_port"] = args.port
    if args.env:
        overrides["env"] = args.env

    settings = load_settings(**overrides)
    app = create_app(settings)
    # logging is configured by the app's lifespan; keep uvicorn from installing its own
    uvicorn.run(app, host=settings.listen_host, port=settings.listen_port, log_config=None)


if __name__ == "__main__":
    main()
