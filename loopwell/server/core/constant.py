"""
Server constants.
"""

PROJECT_NAME = "Loopwell Server"
API_VERSION = "0.1.0"
API_V1_STR = "/api/v1"
