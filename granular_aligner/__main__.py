"""Package entry point for ``python -m granular_aligner``.

WHY: Users run ``python -m granular_aligner segment lyrics.txt`` or
``python -m granular_aligner serve`` without installing a console script.

HOW: Delegates to the CLI's main() function.
"""

from granular_aligner.cli import main

if __name__ == "__main__":
    main()
