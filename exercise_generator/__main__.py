"""Entry point wrapper for ``python -m exercise_generator``.

Example
-------
::

    python -m exercise_generator --low A2 --high E4 --mode interval \
        --intervals 3,4,7 --num-intervals 4 --json
"""

# Reuse the package level ``main`` function so both ``python -m`` and the
# installed console script behave identically.
from . import main

if __name__ == "__main__":
    main()
