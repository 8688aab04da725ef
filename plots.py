# plots.py
"""
Heat map plots of key usage for a layout.
"""

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns
from pathlib import Path
from typing import List, Optional

from keyboard import N_COLUMNS, N_ROWS
from layout import Layout
from scoring import LayoutScorer


def key_usage_grid(layout: Layout, scorer: LayoutScorer) -> np.ndarray:
    """Character frequency per key as a 3x10 grid, in percent."""
    return scorer.key_frequencies(layout).reshape(N_ROWS, N_COLUMNS) * 100


def plot_layout_heatmap(layout: Layout, scorer: LayoutScorer, output_path: str,
                        title: Optional[str] = None) -> Path:
    """
    Save a heat map of key usage, each key labelled with its character.

    Args:
        layout: Layout to plot
        scorer: Scorer providing the character frequencies
        output_path: Image file to write (parent folders are created)
        title: Plot title (defaults to the layout string)

    Returns:
        Path of the written image
    """
    converter = scorer.context.converter
    grid = key_usage_grid(layout, scorer)
    labels = np.array([converter.to_char(int(s)) for s in layout.matrix]).reshape(N_ROWS, N_COLUMNS)
    annotations = np.array([[f"{labels[r, c]}\n{grid[r, c]:.2f}" for c in range(N_COLUMNS)]
                            for r in range(N_ROWS)])

    fig, ax = plt.subplots(figsize=(12, 4))
    sns.heatmap(grid, ax=ax, cmap='viridis', annot=annotations, fmt='',
                xticklabels=False, yticklabels=False, linewidths=1, linecolor='white',
                cbar_kws={'label': 'Key usage (%)'})
    ax.axvline(N_COLUMNS // 2, color='black', linewidth=3)
    ax.set_title(title or f"{layout.to_string(converter, ' ')}  (score {scorer.score(layout):.4f})")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.close(fig)
    print(f"Saved layout heat map to: {output_path.absolute()}")
    return output_path


def plot_score_distribution(layouts: List[Layout], output_path: str) -> Path:
    """Save a histogram of the scores of a generated batch."""
    scores = np.array([layout.score for layout in layouts])

    fig, ax = plt.subplots(figsize=(10, 5))
    sns.histplot(scores, ax=ax, bins=min(50, max(5, len(scores) // 2)), color='steelblue')
    ax.axvline(scores.max(), color='red', linestyle='--', label=f'Best: {scores.max():.4f}')
    ax.set_xlabel('Score')
    ax.set_ylabel('Layouts')
    ax.set_title(f'Scores of {len(scores)} generated layouts')
    ax.legend()

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.close(fig)
    print(f"Saved score distribution to: {output_path.absolute()}")
    return output_path
