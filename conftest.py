"""
Root pytest configuration.
The environment must be switched to testing before any app module reads settings.
"""
import os

os.environ["TESTING"] = "True"
os.environ["DEBUG"] = "False"
os.environ.setdefault("SHIPPING_FEE", "0")
os.environ.setdefault("FREE_SHIPPING_THRESHOLD", "0")
