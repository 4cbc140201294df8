"""Store and formatting adapters for spanscope."""
