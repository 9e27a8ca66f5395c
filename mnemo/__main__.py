from mnemo.cli.main import run

run()
