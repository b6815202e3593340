"""Government tender browser: OCDS client and the search pipeline."""
