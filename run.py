"""Application entry point.

Serves the GoodLife plan API through Gunicorn. The in-memory store lives in the
worker process, so a single worker is used. ``python run.py --dev`` runs the
Flask development server instead.
"""

import os
import sys

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from goodlife import create_app  # noqa: E402

app = create_app()

if __name__ == '__main__':
    bind = os.environ.get('GOODLIFE_BIND', '0.0.0.0:5054')

    if '--dev' in sys.argv[1:]:
        host, _, port = bind.rpartition(':')
        app.run(host=host or '127.0.0.1', port=int(port), debug=True)
        sys.exit(0)

    command = ["gunicorn", "-w", "1", "-b", bind, "run:app"]
    print(f"Launching Gunicorn with command: {' '.join(command)}")
    try:
        os.execvp(command[0], command)
    except FileNotFoundError:
        print("Error: 'gunicorn' command not found.", file=sys.stderr)
        print("Please install Gunicorn: pip install gunicorn", file=sys.stderr)
        sys.exit(1)
