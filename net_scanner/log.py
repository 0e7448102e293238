import logging

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def setup_logging(level: str = "WARNING") -> None:
    name = str(level).upper()
    logging.basicConfig(
        level=getattr(logging, name) if name in LEVELS else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )
