#!/usr/bin/env python3
"""
List the focus areas, their blocks and the boss-status notes from the Miro board.

Usage:
    uv run python src/scripts/list_board.py
"""

import asyncio
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import ConfigError, load_config
from services.board import (
    BoardError,
    MiroService,
    focus_areas_with_blocks_from,
    preparation_notes_from,
)


async def main() -> int:
    """List focus areas and preparation notes."""
    try:
        config = load_config()
    except ConfigError as e:
        print(f"\n{e}")
        return 2

    print("Fetching mind-map nodes from Miro...\n")
    async with MiroService(config.miro) as miro:
        try:
            nodes = await miro.fetch_all_mindmap_nodes()
            areas = focus_areas_with_blocks_from(nodes, config.miro.target_widget_id)
        except BoardError as e:
            print(f"Error reading board: {e}")
            return 1

    print(f"Found {len(nodes)} nodes, {len(areas)} focus areas\n")
    print("=" * 80)

    for area in areas:
        print(f"\n{area.area}")
        for block in area.blocks:
            print(f"  - {block}")

    notes = preparation_notes_from(nodes)
    print("-" * 80)
    if notes is None:
        print("Boss status notes: None")
    else:
        print("Conceptual thoughts:")
        for thought in notes.conceptual_thoughts:
            print(f"  - {thought}")
        print("Meeting selection:")
        for item in notes.meeting_selection:
            print(f"  - {item}")

    print("\nDone!")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
