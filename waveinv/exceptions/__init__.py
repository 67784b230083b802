"""
================================================
Exceptions and Warnings (:mod:`waveinv.exceptions`)
================================================

Fatal conditions met while assembling the normal equations are raised as
exceptions carrying the identity of the offending records. Non-fatal
anomalies are issued through :func:`warnings.warn`, with dedicated warning
categories that can be filtered or escalated by the caller.
"""
from .exceptions import *
