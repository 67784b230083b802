#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Exceptions raised, and warnings issued, while assembling Am=d.
"""

__all__ = ['InputInconsistencyException',
           'MissingDataException',
           'DegenerateObservationException',
           'TimeMisalignmentException',
           'NumericAnomalyWarning',
           'MissingDataWarning',
           'InputInconsistency',
           'MissingData',
           'DegenerateObservation',
           'TimeMisalignment',
           'NumericAnomaly']



class InputInconsistencyException(Exception):
    """
    Exception raised when the input records are inconsistent with each
    other, e.g. a partial waveform whose length differs from that of the
    time window it belongs to, or a reused AtA matrix of the wrong shape.
    """

    def __init__(self, *args, message=None):
        if message is not None:
            self.message = message
        else:
            self.message = 'The input data are inconsistent.'
        for arg in args:
            self.message += '\n%s'%arg
        super().__init__(self.message)

    def __str__(self):
        return self.message


class MissingDataException(Exception):
    """
    Exception raised when some (time window, unknown parameter) pair is not
    covered by any partial waveform.
    """

    def __init__(self, *args, message=None):
        if message is not None:
            self.message = message
        else:
            self.message = 'Input partials are not enough.'
        for arg in args:
            self.message += '\n%s'%arg
        super().__init__(self.message)

    def __str__(self):
        return self.message


class DegenerateObservationException(Exception):
    """
    Exception raised when an observed waveform is identically zero or
    contains nan values.
    """

    def __init__(self, *args):
        self.message = 'The observed waveform is either zero or contains nan'
        self.message += ' values.'
        for arg in args:
            self.message += '\n%s'%arg
        super().__init__(self.message)

    def __str__(self):
        return self.message


class TimeMisalignmentException(Exception):
    """
    Exception raised when the start times of an observed waveform and of its
    synthetic counterpart differ by more than the allowed tolerance.
    """

    def __init__(self, *args):
        self.message = 'Start times of observed and synthetic waveforms do not'
        self.message += ' match.'
        for arg in args:
            self.message += '\n%s'%arg
        super().__init__(self.message)

    def __str__(self):
        return self.message


class NumericAnomalyWarning(UserWarning):
    """
    Issued when a partial waveform contains nan values. The assembly is not
    interrupted.
    """
    pass


class MissingDataWarning(UserWarning):
    """
    Issued when missing partial waveforms are replaced by zeros.
    """
    pass


InputInconsistency = InputInconsistencyException
MissingData = MissingDataException
DegenerateObservation = DegenerateObservationException
TimeMisalignment = TimeMisalignmentException
NumericAnomaly = NumericAnomalyWarning
