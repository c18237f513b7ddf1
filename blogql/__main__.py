from blogql.main import run

run()
