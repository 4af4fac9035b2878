"""
Figure wrapper and named figure collections.

Plot helpers return ``Figure`` objects (a matplotlib figure plus a title
and description) so the CLI can save them in bulk or bundle them into a
single HTML page.
"""

from __future__ import annotations

import base64
import io
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Literal, Optional

import matplotlib.figure
import matplotlib.pyplot as plt

OutputFormat = Literal["png", "pdf", "svg"]


@dataclass
class Figure:
    """
    A rendered matplotlib figure with metadata.

    Attributes
    ----------
    fig : matplotlib.figure.Figure
        The underlying figure
    title : str
        Short human-readable title
    description : str
        What the figure shows
    metadata : dict
        Parameters used to build the figure; ``created_at`` is added
    """
    fig: matplotlib.figure.Figure
    title: str
    description: str = ""
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        if "created_at" not in self.metadata:
            self.metadata["created_at"] = datetime.now().isoformat()

    def save(
        self,
        path: Path | str,
        format: Optional[OutputFormat] = None,
        dpi: int = 300,
        **kwargs
    ) -> Path:
        """
        Save to ``path``; the format is inferred from the suffix when omitted.

        Returns
        -------
        Path
            The path written.
        """
        path = Path(path)
        if format is None:
            format = path.suffix.lstrip(".").lower()
            if format not in ("png", "pdf", "svg"):
                format = "png"

        path.parent.mkdir(parents=True, exist_ok=True)
        self.fig.savefig(
            path,
            format=format,
            **{"dpi": dpi, "bbox_inches": "tight", "facecolor": "white", **kwargs},
        )
        return path

    def to_base64(self, format: str = "png", dpi: int = 150) -> str:
        buf = io.BytesIO()
        self.fig.savefig(buf, format=format, dpi=dpi, bbox_inches="tight")
        return base64.b64encode(buf.getvalue()).decode()

    def close(self):
        """Release the matplotlib figure."""
        plt.close(self.fig)


class FigureCollection:
    """
    Ordered, named set of figures.

    Examples
    --------
    >>> collection = FigureCollection()
    >>> collection.add("heatmap", plot_heatmap(grid))
    >>> collection.save_all(Path("figures/"), format="pdf")
    """

    def __init__(self):
        self.figures: dict[str, Figure] = {}
        self._creation_order: list[str] = []

    def add(self, key: str, fig: Figure) -> "FigureCollection":
        self.figures[key] = fig
        if key not in self._creation_order:
            self._creation_order.append(key)
        return self

    def get(self, key: str) -> Optional[Figure]:
        return self.figures.get(key)

    def __getitem__(self, key: str) -> Figure:
        return self.figures[key]

    def __len__(self) -> int:
        return len(self.figures)

    def __iter__(self):
        """Iterate (key, figure) pairs in creation order."""
        for key in self._creation_order:
            yield key, self.figures[key]

    def save_all(
        self,
        output_dir: Path | str,
        format: OutputFormat = "png",
        dpi: int = 300
    ) -> list[Path]:
        """Save every figure as ``<output_dir>/<key>.<format>``."""
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        return [
            fig.save(output_dir / f"{key}.{format}", format=format, dpi=dpi)
            for key, fig in self
        ]

    def to_html_report(self, output_path: Path | str, title: str = "Exploratory Analysis") -> Path:
        """Write a single self-contained HTML page with every figure embedded."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        sections = []
        for key, fig in self:
            img_b64 = fig.to_base64(format="png", dpi=150)
            sections.append(
                f'<section id="{key}"><h2>{fig.title}</h2>'
                f'<p>{fig.description}</p>'
                f'<img src="data:image/png;base64,{img_b64}" alt="{fig.title}"></section>'
            )

        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        html = (
            "<!DOCTYPE html>\n<html lang=\"en\"><head><meta charset=\"UTF-8\">"
            f"<title>{title}</title>"
            "<style>body{font-family:sans-serif;max-width:1100px;margin:2rem auto;}"
            "img{max-width:100%;}</style></head><body>"
            f"<h1>{title}</h1><p>Generated: {timestamp}</p>"
            + "\n".join(sections)
            + "</body></html>"
        )
        output_path.write_text(html)
        return output_path

    def close_all(self):
        for _, fig in self:
            fig.close()
        self.figures.clear()
        self._creation_order.clear()
