"""Clients for external geocoding APIs."""
from geoinsights.clients.nominatim_client import NominatimClient, NominatimError
from geoinsights.clients.openai_client import LLMGeocoder, OpenAIClient

__all__ = ["NominatimClient", "NominatimError", "OpenAIClient", "LLMGeocoder"]
