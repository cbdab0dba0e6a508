from scverse_stats.cli import app

app(prog_name="scverse-stats")
