# optimize_layout.py
"""
Keyboard layout generation software

Generates 30-key layouts by randomized restarts of a local search
(best single swaps, then column rearrangements, until neither helps),
scored on corpus n-gram frequencies: trigram rolls/alternates/redirects,
key effort, finger overuse, same-finger travel, scissors and stretches.

Usage:
    # Generate layouts with the settings in config.yaml
    python optimize_layout.py --config config.yaml --n-layouts 500

    # Keep the keys marked in the pin mask, shuffle and re-optimize the rest
    python optimize_layout.py --improve "qwfpbjluy'arstgmneiozxcdvkh,./" --pins "xxxxx........................."

    # Analyze or compare existing layouts
    python optimize_layout.py --analyze "qwertyuiopasdfghjkl;zxcvbnm,./"
    python optimize_layout.py --compare "qwertyuiopasdfghjkl;zxcvbnm,./" "qwfpbjluy;arstgmneiozxcdvkh,./"

"""

import argparse
import datetime
import sys
import time
from pathlib import Path

import pandas as pd
import psutil

from config import Config, load_config, validate_config, print_config_summary, create_default_config
from language_data import Converter, load_language_data
from layout import Layout
from layout_generation import LayoutGenerator
from scoring import LayoutScorer, create_layout_scorer
from display import (print_optimization_header, print_ranked_layouts, print_layout_analysis,
                     print_layout_comparison, print_generation_summary, visualize_keyboard_layout)
from plots import plot_layout_heatmap, plot_score_distribution
from validation import run_validation_suite

#-----------------------------------------------------------------------------
# Run functions
#-----------------------------------------------------------------------------
def load_scorer(config: Config) -> LayoutScorer:
    """Load the corpus tables and build the scorer."""
    print(f"\nLoading language data from {config.paths.language_data_folder}...")
    language_data = load_language_data(config.paths.language_data_folder, config.info.language,
                                       converter=Converter(config.generation.characters))
    print(f"  {len(language_data.converter)} symbols, {language_data.n_trigrams:,} trigrams")

    print("Preparing scoring context...")
    scorer = create_layout_scorer(config, language_data)
    print(f"  Scoring the top {scorer.context.n_trigrams:,} trigrams on {config.info.keyboard.value}")
    return scorer


def run_generation(config: Config, scorer: LayoutScorer, n_layouts: int,
                   based_on: str = None, plot_path: str = None) -> list:
    """
    Generate layouts and display the best ones.

    Args:
        config: Configuration object
        scorer: Scorer for the loaded corpus
        n_layouts: Number of restarts
        based_on: Layout string to start from; pinned keys keep their characters
        plot_path: Save a heat map of the best layout here
    """
    gen = config.generation
    pins = gen.pinned_positions
    print_optimization_header("Layout generation" if based_on is None else "Layout improvement")
    print_config_summary(config)

    memory_gb = psutil.virtual_memory().total / (1024**3)
    print(f"🖥️  Available memory: {memory_gb:.1f} GB")

    generator = LayoutGenerator(scorer, gen.characters, pins, gen.processes,
                                show_progress=gen.show_progress_bar)
    print(f"  Processes: {generator.n_processes}")

    start_time = time.time()
    if based_on is not None:
        base = Layout.from_string(based_on, scorer.context.converter)
        base.score = scorer.score(base)
        print(f"\nStarting layout (score {base.score:.6f}):")
        visualize_keyboard_layout(base, scorer, "Starting layout")
        layouts = generator.generate_n_with_pins(base, n_layouts, gen.seed)
    elif pins:
        base = Layout.from_string(gen.characters, scorer.context.converter)
        layouts = generator.generate_n_with_pins(base, n_layouts, gen.seed)
    else:
        layouts = generator.generate_n(n_layouts, gen.seed)
    elapsed_time = time.time() - start_time

    print_ranked_layouts(layouts, scorer, config.visualization.top_n,
                         print_keyboard=config.visualization.print_keyboard,
                         verbose=config.visualization.verbose_output)
    print_generation_summary(layouts, elapsed_time, generator.n_processes)

    if layouts:
        csv_path = save_layouts_csv(layouts, scorer, config)
        print(f"\nResults saved to: {csv_path}")

    if plot_path and layouts:
        plot_layout_heatmap(layouts[0], scorer, plot_path)
        if len(layouts) > 1:
            plot_score_distribution(layouts, plot_path.rsplit('.', 1)[0] + '_scores.png')
    return layouts


def save_layouts_csv(layouts: list, scorer: LayoutScorer, config: Config) -> str:
    """Save ranked layouts with their score components to CSV."""
    converter = scorer.context.converter

    results_data = []
    for i, layout in enumerate(layouts):
        row = {
            'rank': i + 1,
            'layout': layout.to_string(converter),
            'score': layout.score,
        }
        row.update(scorer.components(layout).as_dict())
        results_data.append(row)

    timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    config_name = Path(config._config_path).stem
    filepath = Path(config.paths.layout_results_folder) / f"layouts_{config_name}_{timestamp}.csv"

    filepath.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(results_data).to_csv(filepath, index=False)

    return str(filepath)


def run_analysis(scorer: LayoutScorer, layout_string: str, plot_path: str = None) -> None:
    """Print the full analysis of one layout."""
    print_optimization_header("Layout analysis")
    layout = Layout.from_string(layout_string, scorer.context.converter)
    print_layout_analysis(layout, scorer, layout_string[:34])
    if plot_path:
        plot_layout_heatmap(layout, scorer, plot_path)


def run_comparison(scorer: LayoutScorer, layout_a: str, layout_b: str) -> None:
    print_optimization_header("Layout comparison")
    converter = scorer.context.converter
    print_layout_comparison(Layout.from_string(layout_a, converter),
                            Layout.from_string(layout_b, converter), scorer)

#-----------------------------------------------------------------------------
# Command-line interface
#-----------------------------------------------------------------------------
def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Generate keyboard layouts by randomized local search.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Generate 1000 layouts on 8 processes with a fixed seed
  python optimize_layout.py --config config.yaml --n-layouts 1000 --processes 8 --seed 7

  # Re-optimize an existing layout, keeping the home row pinned
  python optimize_layout.py --improve "qwfpbjluy;arstgmneiozxcdvkh,./" --pins "..........xxxxxxxxxx.........."

  # Validate the scoring machinery on the configured corpus
  python optimize_layout.py --validate
        """
    )

    # Basic options
    parser.add_argument('--config', type=str, default='config.yaml',
                        help='Path to configuration file (default: config.yaml)')
    parser.add_argument('--create-config', action='store_true',
                        help='Write a default configuration file to --config and exit')
    parser.add_argument('--verbose', action='store_true',
                        help='Show detailed scoring breakdown')

    # Generation options
    parser.add_argument('--n-layouts', type=int, default=None,
                        help='Number of restarts (default: from config)')
    parser.add_argument('--processes', type=int, default=None,
                        help='Number of parallel processes (default: auto-detect CPU count)')
    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed for reproducible runs (default: from config)')
    parser.add_argument('--pins', type=str, default=None,
                        help="30-key pin mask, 'x' marks a pinned key (default: from config)")
    parser.add_argument('--top', type=int, default=None,
                        help='Number of layouts to display (default: from config)')
    parser.add_argument('--improve', type=str, metavar='LAYOUT', default=None,
                        help='Start every restart from this layout, keeping pinned keys')

    # Analysis options
    parser.add_argument('--analyze', type=str, metavar='LAYOUT', default=None,
                        help='Analyze one layout instead of generating')
    parser.add_argument('--compare', type=str, nargs=2, metavar=('LAYOUT_A', 'LAYOUT_B'), default=None,
                        help='Compare two layouts instead of generating')
    parser.add_argument('--plot', type=str, metavar='PATH', default=None,
                        help='Save a key usage heat map of the best (or analyzed) layout')

    # Validation options
    parser.add_argument('--validate', action='store_true',
                        help='Run validation suite before generation')

    return parser.parse_args(argv)


def apply_overrides(config: Config, args) -> None:
    """Command line options take precedence over the configuration file."""
    gen = config.generation
    if args.processes is not None:
        gen.processes = args.processes
    if args.seed is not None:
        gen.seed = args.seed
    if args.pins is not None:
        gen.pins = args.pins
    if args.n_layouts is not None:
        gen.n_layouts = args.n_layouts
    if args.top is not None:
        config.visualization.top_n = args.top
    if args.verbose:
        config.visualization.verbose_output = True
    validate_config(config)


def main(argv=None):
    """Main entry point."""
    args = parse_arguments(argv)

    if args.create_config:
        create_default_config(args.config)
        return 0

    try:
        config = load_config(args.config)
        apply_overrides(config, args)
        scorer = load_scorer(config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Configuration error: {e}")
        return 1

    if args.validate:
        print(f"🧪 Running validation suite...")
        if not run_validation_suite(scorer, config.generation.characters):
            print("❌ Validation failed. Please fix issues before running optimization.")
            return 1
        print("✅ Validation passed!\n")

    try:
        if args.analyze:
            run_analysis(scorer, args.analyze, args.plot)
        elif args.compare:
            run_comparison(scorer, *args.compare)
        else:
            run_generation(config, scorer, config.generation.n_layouts,
                           based_on=args.improve, plot_path=args.plot)
    except ValueError as e:
        print(f"Error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
