"""Allow `python -m netflow`."""

from netflow.main import run

if __name__ == "__main__":
    run()
