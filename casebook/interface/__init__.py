"""Console front end for casebook."""
