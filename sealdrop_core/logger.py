import logging, json, re, sys, time, os

_KEY_BLOCK = re.compile(r"-----BEGIN [A-Z ]*KEY-----.*?-----END [A-Z ]*KEY-----", re.S)


class KeyMaterialFilter(logging.Filter):
    """Replaces any PEM-framed key that slips into a log message."""

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        if "-----BEGIN" in msg:
            record.msg = _KEY_BLOCK.sub("[redacted key]", msg)
            record.args = None
        return True


def get_logger(name="SealDrop", level=logging.INFO, to_file=None):
    """Structured JSON-line logger shared by all SealDrop components."""
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not any(isinstance(f, KeyMaterialFilter) for f in logger.filters):
        logger.addFilter(KeyMaterialFilter())

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            fmt=json.dumps({
                "ts": "%(asctime)s",
                "level": "%(levelname)s",
                "name": "%(name)s",
                "msg": "%(message)s"
            }),
            datefmt="%Y-%m-%dT%H:%M:%SZ",
        )
        formatter.converter = time.gmtime  # UTC
        handler.setFormatter(formatter)
        logger.addHandler(handler)

        if to_file:
            os.makedirs(os.path.dirname(to_file) or ".", exist_ok=True)
            file_handler = logging.FileHandler(to_file)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger
