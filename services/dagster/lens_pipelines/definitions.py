"""Dagster Definitions - Build Lens resource wiring.

Index and migration pipelines that load this code location get the
``build_lens`` resource for recording build and migration attempts.
"""

from dagster import Definitions, EnvVar

from .resources import BuildLensResource


defs = Definitions(
    resources={
        "build_lens": BuildLensResource(
            connection_string=EnvVar("MONGO_CONNECTION_STRING"),
            database=EnvVar("MONGO_DATABASE"),
        ),
    },
)
