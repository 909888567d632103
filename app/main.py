import uvicorn
from dotenv import load_dotenv

load_dotenv()

from server import server  # noqa: E402  pylint: disable=wrong-import-position

server_app = server.handler


def main():
    """Run the API with the in-process auto-translation worker."""
    uvicorn.run(server_app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
