import logging
import os

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("entrypoint")


def main() -> None:
  """Launch the API server; set PAINPRESS_AUTO_CREATE_TABLES on first run to create the schema."""
  port = os.getenv("PAINPRESS_PORT", "8002")
  logger.info("Starting painpress on port %s...", port)
  # Replace the current process so uvicorn receives SIGTERM directly.
  args = ["uvicorn", "painpress.main:app", "--host", "0.0.0.0", "--port", port, "--no-server-header"]
  os.execvp("uvicorn", args)


if __name__ == "__main__":
  main()
