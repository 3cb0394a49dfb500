"""Serialization of submission contents."""

from .deserializer import ContactDeserializer, StepDeserializer
from .serializer import ContactSerializer

__all__ = ["ContactDeserializer", "ContactSerializer", "StepDeserializer"]
