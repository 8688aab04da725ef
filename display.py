# display.py
"""
Display, visualization, and output formatting for layout generation.
"""

from typing import List, Optional

import numpy as np

from keyboard import N_COLUMNS, N_ROWS, Finger
from layout import Layout
from patterns import TrigramPattern
from scoring import LayoutScorer

TRIGRAM_LABELS = {
    TrigramPattern.INROLL: "Inrolls",
    TrigramPattern.OUTROLL: "Outrolls",
    TrigramPattern.ONEHAND: "Onehands",
    TrigramPattern.ALTERNATE: "Alternates",
    TrigramPattern.ALTERNATE_SFS: "Alternates (sfs)",
    TrigramPattern.REDIRECT: "Redirects",
    TrigramPattern.REDIRECT_SFS: "Redirects (sfs)",
    TrigramPattern.BAD_REDIRECT: "Bad redirects",
    TrigramPattern.BAD_REDIRECT_SFS: "Bad redirects (sfs)",
    TrigramPattern.SFB: "Sfb",
    TrigramPattern.BAD_SFB: "Bad sfb",
    TrigramPattern.SFT: "Sft",
    TrigramPattern.OTHER: "Other",
    TrigramPattern.INVALID: "Invalid",
}

#-----------------------------------------------------------------------------
# Keyboard visualization
#-----------------------------------------------------------------------------
def format_keyboard(layout: Layout, scorer: LayoutScorer, title: str = "Layout") -> str:
    """ASCII drawing of the 3x10 layout, hands split by a double bar."""
    converter = scorer.context.converter
    width = 6 * N_COLUMNS - 1
    lines = [f"╭{'─' * width}╮", f"│ Layout: {title:<{width - 9}}│",
             "├" + "┬".join(["─────"] * N_COLUMNS) + "┤"]
    for row in range(N_ROWS):
        keys = [f" {converter.to_char(int(s)).upper():^3} "
                for s in layout.matrix[row * N_COLUMNS:(row + 1) * N_COLUMNS]]
        lines.append("│" + "│".join(keys[:5]) + "║" + "│".join(keys[5:]) + "│")
        if row < N_ROWS - 1:
            lines.append("├" + "┼".join(["─────"] * 5) + "╫" + "┼".join(["─────"] * 5) + "┤")
    lines.append("╰" + "┴".join(["─────"] * 5) + "╨" + "┴".join(["─────"] * 5) + "╯")
    return "\n".join(lines)


def visualize_keyboard_layout(layout: Layout, scorer: LayoutScorer, title: str = "Layout") -> None:
    """Print ASCII visual representation of keyboard layout."""
    print(format_keyboard(layout, scorer, title))

#-----------------------------------------------------------------------------
# Results display
#-----------------------------------------------------------------------------
def print_optimization_header(mode: str) -> None:
    """Print header for a run."""
    print(f"\n" + "="*60)
    print(f"{mode.upper()}")
    print("="*60)


def print_score_breakdown(layout: Layout, scorer: LayoutScorer, indent: str = "  ") -> None:
    components = scorer.components(layout)
    print(f"{indent}Score breakdown:")
    print(f"{indent}  Trigrams:         {components.trigram:+.6f}")
    print(f"{indent}  Effort:           {-components.effort:+.6f}")
    print(f"{indent}  Finger usage:     {-components.usage:+.6f}")
    print(f"{indent}  Finger speed:     {-components.finger_speed:+.6f}")
    print(f"{indent}  Scissors:         {-components.scissors:+.6f}")
    print(f"{indent}  Lateral stretch:  {-components.lateral_stretch:+.6f}")
    print(f"{indent}  Pinky/ring:       {-components.pinky_ring:+.6f}")
    print(f"{indent}  Total:            {components.total():+.6f}")


def print_layout_analysis(layout: Layout, scorer: LayoutScorer, title: str = "Layout",
                          n_sfbs: int = 10) -> None:
    """
    Print a full analysis of one layout: keyboard, score breakdown,
    trigram pattern shares, same-finger stats and finger usage.
    """
    converter = scorer.context.converter
    visualize_keyboard_layout(layout, scorer, title)
    print(f"  Score: {scorer.score(layout):.6f}")
    print_score_breakdown(layout, scorer)

    trigrams = scorer.trigram_stats(layout)
    print(f"\n  Trigrams:")
    for pattern, label in TRIGRAM_LABELS.items():
        if trigrams[pattern] > 0 or pattern in (TrigramPattern.INROLL, TrigramPattern.OUTROLL,
                                                TrigramPattern.ALTERNATE, TrigramPattern.REDIRECT):
            print(f"    {label + ':':<22}{trigrams[pattern] * 100:6.3f}%")

    bigrams = scorer.bigram_stats(layout)
    print(f"\n  Same finger:")
    print(f"    Sfb:   {bigrams['sfb'] * 100:.3f}%")
    print(f"    Dsfb:  {bigrams['dsfb'] * 100:.3f}%  (skip 2: {bigrams['dsfb2'] * 100:.3f}%, "
          f"skip 3: {bigrams['dsfb3'] * 100:.3f}%)")
    print(f"    Scissors: {bigrams['scissors'] * 100:.3f}%   Lateral stretch: "
          f"{bigrams['lateral_stretch'] * 100:.3f}%   Pinky/ring: {bigrams['pinky_ring'] * 100:.3f}%")

    usage = scorer.finger_usage(layout)
    print(f"\n  Finger usage:")
    print("    " + "  ".join(f"{Finger(f).name}: {usage[f] * 100:5.2f}%" for f in range(len(usage))))

    sfbs = scorer.same_finger_bigrams(layout, n_sfbs)
    if sfbs:
        print(f"\n  Top same-finger bigrams:")
        for a, b, freq in sfbs:
            print(f"    {converter.to_char(a)}{converter.to_char(b)}: {freq * 100:.3f}%")


def print_ranked_layouts(layouts: List[Layout], scorer: LayoutScorer, n_display: int = 10,
                         print_keyboard: bool = False, verbose: bool = False) -> None:
    """
    Print the best generated layouts.

    Args:
        layouts: Layouts ranked best first
        scorer: Scorer used for generation
        n_display: Number of layouts to show
        print_keyboard: Draw each layout
        verbose: Show the score breakdown of each layout
    """
    converter = scorer.context.converter
    n_display = min(len(layouts), n_display)

    for i, layout in enumerate(layouts[:n_display], 1):
        print(f"\n#{i}: Score = {layout.score:.6f}")
        print(f"  Layout: {layout.to_string(converter, ' ')}")
        if verbose:
            print_score_breakdown(layout, scorer)
        if print_keyboard:
            visualize_keyboard_layout(layout, scorer, f"Solution #{i}")


def print_layout_comparison(layout_a: Layout, layout_b: Layout, scorer: LayoutScorer,
                            title_a: str = "A", title_b: str = "B") -> None:
    """Print two layouts side by side with their main statistics."""
    rows_a = format_keyboard(layout_a, scorer, title_a).split("\n")
    rows_b = format_keyboard(layout_b, scorer, title_b).split("\n")
    for left, right in zip(rows_a, rows_b):
        print(f"{left}   {right}")

    components_a, components_b = scorer.components(layout_a), scorer.components(layout_b)
    trigrams_a, trigrams_b = scorer.trigram_stats(layout_a), scorer.trigram_stats(layout_b)
    bigrams_a, bigrams_b = scorer.bigram_stats(layout_a), scorer.bigram_stats(layout_b)

    print(f"\n  {'':<22}{title_a:>12}{title_b:>12}")
    print(f"  {'Score':<22}{components_a.total():>12.6f}{components_b.total():>12.6f}")
    for key in ('sfb', 'dsfb', 'scissors', 'lateral_stretch'):
        print(f"  {key.replace('_', ' ').capitalize() + ' %':<22}"
              f"{bigrams_a[key] * 100:>12.3f}{bigrams_b[key] * 100:>12.3f}")
    for pattern in (TrigramPattern.INROLL, TrigramPattern.OUTROLL, TrigramPattern.ALTERNATE,
                    TrigramPattern.ONEHAND, TrigramPattern.REDIRECT, TrigramPattern.BAD_REDIRECT):
        print(f"  {TRIGRAM_LABELS[pattern] + ' %':<22}"
              f"{trigrams_a[pattern] * 100:>12.3f}{trigrams_b[pattern] * 100:>12.3f}")


def print_generation_summary(layouts: List[Layout], elapsed_time: float,
                             n_processes: Optional[int] = None) -> None:
    """Print timing and score spread of a batch."""
    if not layouts:
        print("No layouts generated")
        return
    scores = np.array([layout.score for layout in layouts])
    print(f"\nGenerated {len(layouts)} layouts in {elapsed_time:.2f}s"
          + (f" using {n_processes} processes" if n_processes else ""))
    print(f"  Best: {scores.max():.6f}   Median: {np.median(scores):.6f}   Worst: {scores.min():.6f}")
    print(f"  Distinct local optima: {len({layout for layout in layouts})}")
