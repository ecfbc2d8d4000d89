import pathlib
import sys
sys.path.append(str(pathlib.Path(__file__).parent / "src"))

if __name__ == "__main__":
    from bucket.boot import init_bucket
    from bucket.cli import main

    init_bucket("cli")

    main()
