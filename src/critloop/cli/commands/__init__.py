"""critloop CLI subcommands."""
