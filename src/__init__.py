"""Docker Simple Panel: ядро управления контейнерным runtime."""

__version__ = "0.1.0"
