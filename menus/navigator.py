import webbrowser

from utils.logger import log_info, log_warning

VIEWS = ("landing", "app", "exit")


class CliNavigator:
    """Tracks which view the main loop shows and opens external URLs in the browser."""

    def __init__(self, initial_view: str = "landing", *, open_browser: bool = True):
        self.current_view = initial_view
        self.open_browser = open_browser
        self.last_url = None

    def open_url(self, url: str) -> None:
        self.last_url = url
        log_info(f"Authorize URL:\n{url}")
        if not self.open_browser:
            return
        try:
            opened = webbrowser.open(url)
        except webbrowser.Error as e:
            log_warning(f"Could not open a browser ({e}); open the URL above manually.")
            return
        if not opened:
            log_warning("No browser available; open the URL above manually.")

    def show_view(self, name: str) -> None:
        if name not in VIEWS:
            raise ValueError(f"Unknown view: {name}")
        self.current_view = name
