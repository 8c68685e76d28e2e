# Copyright (c) Twisted Matrix Laboratories.
# See LICENSE for details.

"""
tcpchat tests.
"""
