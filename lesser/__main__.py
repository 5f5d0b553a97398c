from lesser.main import run

run()
