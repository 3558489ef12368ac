"""stackctl - deployment orchestrator for the RStudio on AWS environment."""

__version__ = "0.1.0"
