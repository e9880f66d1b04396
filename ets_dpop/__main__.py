#!/usr/bin/env python3
"""Command line helpers for DPoP proofs and gateway headers."""

import asyncio
import json
import os
import sys

from .authorizer import RequestAuthorizer
from .config import GatewayOptions
from .errors import DPoPClientError
from .keys import KeyPair
from .log import setup_logging
from .proof import create_proof

USAGE = (
    f"Usage: {sys.argv[0]} proof <METHOD> <URL> [output_file]\n"
    f"       {sys.argv[0]} headers <METHOD> <URL>"
)


def proof(method: str, url: str, output_file=None):
    """Generate a proof with a throwaway key and print or save it."""
    key_pair = KeyPair.generate()
    data = {
        "proof": create_proof(url, method, key_pair),
        "thumbprint": key_pair.thumbprint,
        "method": method.upper(),
        "target": url,
    }

    if output_file:
        with open(output_file, "w") as f:
            json.dump(data, f, indent=2)
        print(f"Generated proof: {output_file}")
    else:
        print(json.dumps(data, indent=2))


async def headers(method: str, url: str):
    """Fetch a token using ETS_* settings and print the request headers."""
    options = GatewayOptions.from_env()
    authorizer = RequestAuthorizer(options.token_url, options.ets_token, timeout=options.timeout)
    print(json.dumps(await authorizer.authorize(url, method), indent=2))


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) < 3:
        print(USAGE, file=sys.stderr)
        sys.exit(1)

    setup_logging(format_type=os.environ.get("ETS_LOG_FORMAT", "console"))
    command, method, url = argv[:3]
    try:
        if command == "proof":
            proof(method, url, argv[3] if len(argv) > 3 else None)
        elif command == "headers":
            asyncio.run(headers(method, url))
        else:
            print(f"Unknown command: {command}", file=sys.stderr)
            sys.exit(1)
    except DPoPClientError as e:
        print(f"FAIL: {e.code}: {e.message}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
