"""Package entry point for ``python -m codepack``.

HOW: ``--serve`` starts the HTTP API with uvicorn; anything else is
handed to the CLI's main().
"""

import sys

if __name__ == "__main__":
    if "--serve" in sys.argv:
        from codepack.server.app import run_api
        run_api()
    else:
        from codepack.cli import main
        main()
