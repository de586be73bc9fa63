"""sdm-serverless: serverless deploy goal fulfillment for software delivery machines."""

__version__ = "0.1.0"
