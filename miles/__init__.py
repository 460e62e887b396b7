"""Miles order lifecycle and payment settlement service."""
