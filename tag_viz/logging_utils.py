import logging

PACKAGE_LOGGER = "tag_viz"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(node)s/%(threadName)s] %(message)s"


class NodeTagFilter(logging.Filter):
    """Stamps records with the node name unless the caller already set one."""

    def __init__(self, node_name: str):
        super().__init__()
        self.node_name = node_name

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "node"):
            record.node = self.node_name
        return True


def resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"unknown log level {level!r}")
    return value


def configure_logging(node_name: str, level: int | str = logging.INFO) -> logging.Logger:
    """
    Install the console handler on the package logger and return the node logger.

    Module loggers (tag_viz.overlay, tag_viz.compositor, ...) share the same
    handler, so records from the pump threads and the renderer all carry the
    node name and the thread they were emitted on. Calling this again only
    updates the node name and level.
    """
    root = logging.getLogger(PACKAGE_LOGGER)
    root.setLevel(resolve_level(level))

    handler = next((h for h in root.handlers if getattr(h, "_tag_viz", False)), None)
    if handler is None:
        handler = logging.StreamHandler()
        handler._tag_viz = True
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)

    for f in list(handler.filters):
        handler.removeFilter(f)
    handler.addFilter(NodeTagFilter(node_name))

    return logging.getLogger(f"{PACKAGE_LOGGER}.{node_name}")
