#!/usr/bin/env python3
"""
ShapeNet - shape battle engine

Thin wrapper around shapenet.cli. Runs a seeded demo battle, either locally
against an opponent policy or as a host/guest session over an in-memory channel.

To run: python main.py [local|loopback] --seed 7
"""

from shapenet.cli import run

if __name__ == "__main__":
    raise SystemExit(run())
