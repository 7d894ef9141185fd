"""In-process models of small on-chain programs (counter, profiles, voting, transfers) and their account data layouts."""

__version__ = "0.1.0"