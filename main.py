#!/usr/bin/env python3
"""Run the document tagger CLI from a source checkout."""

from doc_tagger.cli import main

if __name__ == "__main__":
    main()
