"""Monte Carlo forecaster for Swiss-stage and single-elimination brackets."""

__version__ = "0.1.0"
