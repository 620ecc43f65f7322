from rich.console import Console as _Console
from rich.panel import Panel

_print = _Console().print


def _highlight(text: str, color: str, kwargs: dict) -> str:
    if not kwargs:
        return text
    return text.format(**{
        k: f"[bold {color}]{v}[/bold {color}]" for k, v in kwargs.items()
    })


class Console:
    @staticmethod
    def newline():
        _print()

    @staticmethod
    def info(text: str, *, important=False, **kwargs):
        text = _highlight(text, "blue", kwargs)
        if important:
            _print(Panel(text, expand=False, border_style="blue"))
        else:
            _print(text, style="dim")

    @staticmethod
    def success(text: str, *, important=False, **kwargs):
        text = _highlight(text, "green", kwargs)
        if important:
            _print(Panel(text, expand=False, border_style="green"))
        else:
            _print(text, style="dim green")

    @staticmethod
    def warn(text: str, *, important=False, **kwargs):
        text = _highlight(text, "red", kwargs)
        if important:
            _print(Panel(text, expand=False, border_style="red"))
        else:
            _print(text, style="dim red")
