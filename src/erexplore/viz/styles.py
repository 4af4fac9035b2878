"""
Consistent visual styles for exploratory expression figures.

Domain Conventions
------------------
- ER-positive = Rose (#e11d48), ER-negative = Blue (#2563eb)
- Indeterminate / missing clinical values = Gray
- Expression heatmaps use the blue-white-red reference palette
- Cluster colors come from a colorblind-safe categorical palette
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

import matplotlib.pyplot as plt
import seaborn as sns

from erexplore.exceptions import InvalidArgumentError

__all__ = [
    'Palette',
    'PALETTES',
    'configure_style',
    'format_pvalue',
]


@dataclass(frozen=True)
class Palette:
    """
    Color palette for exploratory figures.

    Attributes
    ----------
    er_positive : str
        Color for ER-positive samples
    er_negative : str
        Color for ER-negative samples
    missing : str
        Color for missing / indeterminate annotations
    neutral : str
        Color for unannotated elements (histogram bars, boxes)
    categorical : str
        seaborn palette name for clusters and unknown categories
    """
    er_positive: str = "#e11d48"
    er_negative: str = "#2563eb"
    missing: str = "#9ca3af"
    neutral: str = "#6b7280"
    categorical: str = "Set2"

    @property
    def er_status(self) -> dict[str, str]:
        return {
            "Positive": self.er_positive,
            "Negative": self.er_negative,
            "Indeterminate": self.missing,
            "<missing>": self.missing,
        }

    def for_groups(self, groups: list[str]) -> list[str]:
        """
        Colors for a list of group labels.

        ER status labels get their fixed colors; other labels are assigned
        categorical colors in order of appearance.
        """
        known = self.er_status
        fallback = sns.color_palette(self.categorical, 8).as_hex()
        colors = []
        fallback_idx = 0
        for group in groups:
            if group in known:
                colors.append(known[group])
            else:
                colors.append(fallback[fallback_idx % len(fallback)])
                fallback_idx += 1
        return colors


PALETTES = {
    "default": Palette(),
    "colorblind": Palette(
        er_positive="#cc3311",
        er_negative="#0077bb",
        missing="#bbbbbb",
        neutral="#999999",
        categorical="colorblind",
    ),
}


def configure_style(
    style: Literal["paper", "notebook"] = "notebook",
    palette: str | Palette = "default",
    font_scale: float = 1.0,
) -> Palette:
    """
    Configure matplotlib and seaborn for the chosen medium.

    Returns
    -------
    Palette
        The configured color palette.

    Raises
    ------
    InvalidArgumentError
        If ``palette`` names no entry of PALETTES.
    """
    if isinstance(palette, str):
        if palette not in PALETTES:
            raise InvalidArgumentError(
                f"Unknown palette {palette!r}. Choose from: {sorted(PALETTES)}"
            )
        palette = PALETTES[palette]

    params = {
        "figure.facecolor": "white",
        "axes.facecolor": "white",
        "axes.spines.top": False,
        "axes.spines.right": False,
        "legend.frameon": False,
    }
    if style == "paper":
        params.update({"font.size": 10 * font_scale, "figure.dpi": 300, "savefig.dpi": 300})
        context = "paper"
    else:
        params.update({"font.size": 11 * font_scale, "figure.dpi": 100, "savefig.dpi": 150})
        context = "notebook"

    sns.set_theme(style="whitegrid", context=context, font_scale=font_scale)
    plt.rcParams.update(params)
    return palette


def format_pvalue(p: float) -> str:
    """Format a p-value for titles ("p < 0.001", "p = 0.034")."""
    if p < 0.001:
        return "p < 0.001"
    elif p < 0.01:
        return f"p = {p:.3f}"
    return f"p = {p:.2f}"
