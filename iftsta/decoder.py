#!/usr/bin/python3
# Copyright (C) 2024 Dr. Ralf Schlatterbeck Open Source Consulting.
# Reichergasse 131, A-3411 Weidling.
# Web: http://www.runtux.com Email: office@runtux.com
# All rights reserved
# ****************************************************************************
# Permission is hereby granted, free of charge, to any person obtaining a
# copy of this software and associated documentation files (the
# "Software"), to deal in the Software without restriction, including
# without limitation the rights to use, copy, modify, merge, publish,
# distribute, sublicense, and/or sell copies of the Software, and to
# permit persons to whom the Software is furnished to do so, subject to
# the following conditions:
#
# The above copyright notice and this permission notice shall be included
# in all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS
# OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF
# MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT.
# IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY
# CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION OF CONTRACT,
# TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION WITH THE
# SOFTWARE OR THE USE OR OTHER DEALINGS IN THE SOFTWARE.
# ****************************************************************************

""" Decode IFTSTA (transport status) messages into a Document with
    one Consignment record per CNI segment group.
"""

import logging
from datetime         import datetime
from rsclib.autosuper import autosuper
from .edifact         import clean, tokenize, partition, segment_iter
from .edifact         import msg_example

message_start = 'BGM'
group_start   = 'CNI'
status_change = '334'
free_text_sep = ', '

# Date/time format qualifiers: 102 = CCYYMMDD, everything else is
# treated as 203 = CCYYMMDDHHMM
short_dateformat    = ('%Y%m%d', 8)
standard_dateformat = ('%Y%m%d%H%M', 12)

class Date_Parse_Error (ValueError):
    """ A status change date/time does not match its format.
        This is fatal for decoding the whole message.
    """

    def __init__ (self, value, format, consignment_no = None):
        self.value          = value
        self.format         = format
        self.consignment_no = consignment_no
        msg = 'Invalid date/time "%s" for format %s' % (value, format)
        if consignment_no is not None:
            msg = 'Consignment %s: %s' % (consignment_no, msg)
        ValueError.__init__ (self, msg)
    # end def __init__

# end class Date_Parse_Error

class Record (autosuper):
    """ Immutable record, updates return a new record. """

    fields = ()

    def __init__ (self, **kw):
        for k in kw:
            if k not in self.fields:
                raise TypeError ('Unknown field "%s"' % k)
        for k in self.fields:
            object.__setattr__ (self, k, kw.get (k))
    # end def __init__

    def __setattr__ (self, name, value):
        raise AttributeError ('%s is read-only' % self.__class__.__name__)
    # end def __setattr__

    def replace (self, **kw):
        d = self.as_dict (convert = False)
        d.update (kw)
        return self.__class__ (** d)
    # end def replace

    def as_dict (self, convert = True):
        """ With convert, datetimes are returned in ISO format """
        d = {}
        for k in self.fields:
            v = getattr (self, k)
            if convert and isinstance (v, datetime):
                v = v.isoformat ()
            d [k] = v
        return d
    # end def as_dict

    def __eq__ (self, other):
        if not isinstance (other, self.__class__):
            return NotImplemented
        return self.as_dict (convert = False) == other.as_dict (convert = False)
    # end def __eq__

    def __repr__ (self):
        r = []
        for k in self.fields:
            r.append ('%s = %r' % (k, getattr (self, k)))
        return '%s (%s)' % (self.__class__.__name__, ', '.join (r))
    # end def __repr__

# end class Record

class Consignment (Record):
    """ Status of one consignment
    >>> c = Consignment (number = 'CONS1')
    >>> c.status is None
    True
    >>> c.replace (status = '21').status
    '21'
    >>> c.status = '21'
    Traceback (most recent call last):
    ...
    AttributeError: Consignment is read-only
    """

    fields = \
        ( 'number'
        , 'global_identifier'
        , 'status'
        , 'status_changed'
        , 'free_text'
        )

# end class Consignment

class Document (Record):
    """ A decoded message. Consignments are in the order of their CNI
        segments, sender, recipient and control_ref come from UNB.
    """

    fields = \
        ( 'created'
        , 'sender'
        , 'recipient'
        , 'control_ref'
        , 'consignments'
        )

    def __init__ (self, **kw):
        kw ['consignments'] = tuple (kw.get ('consignments') or ())
        self.__super.__init__ (** kw)
    # end def __init__

    def as_dict (self, convert = True):
        d = self.__super.as_dict (convert = convert)
        if convert:
            d ['consignments'] = [c.as_dict () for c in self.consignments]
        return d
    # end def as_dict

# end class Document

def _value (segment, eidx, cidx = 0):
    """ Omitted (empty) components are treated like missing ones """
    v = segment.component (eidx, cidx)
    if v:
        return v
    return None
# end def _value

def parse_date (value, code = None):
    """ Parse value strictly with the format selected by code
    >>> parse_date ('202401151230', '203')
    datetime.datetime(2024, 1, 15, 12, 30)
    >>> parse_date ('202401151230')
    datetime.datetime(2024, 1, 15, 12, 30)
    >>> parse_date ('20240115', '102')
    datetime.datetime(2024, 1, 15, 0, 0)
    >>> parse_date ('20240115', '203')
    Traceback (most recent call last):
    ...
    ValueError: Expected 12 digits, got "20240115"
    >>> parse_date ('20241315', '102') # doctest: +IGNORE_EXCEPTION_DETAIL
    Traceback (most recent call last):
    ...
    ValueError: unconverted data remains
    """
    fmt, length = standard_dateformat
    if code == '102':
        fmt, length = short_dateformat
    # strptime alone would accept single-digit month, day, ...
    if len (value) != length or not (value.isascii () and value.isdigit ()):
        raise ValueError ('Expected %d digits, got "%s"' % (length, value))
    return datetime.strptime (value, fmt)
# end def parse_date

def _consignment_no (segment, record):
    return dict (number = _value (segment, 1))
# end def _consignment_no

def _global_identifier (segment, record):
    return dict (global_identifier = _value (segment, 1))
# end def _global_identifier

def _date_time (segment, record):
    if segment.component (0) != status_change:
        return {}
    value = _value (segment, 0, 1)
    if value is None:
        return {}
    code = segment.component (0, 2)
    try:
        dt = parse_date (value, code)
    except ValueError:
        raise Date_Parse_Error (value, code or '203', record.number)
    return dict (status_changed = dt)
# end def _date_time

def _status (segment, record):
    # Only the simple variant with event code in the second element
    if len (segment) != 2:
        return {}
    return dict (status = _value (segment, 1))
# end def _status

def _free_text (segment, record):
    e = segment.element (3)
    if e is None or not e.component (0):
        return {}
    return dict (free_text = free_text_sep.join (c for c in e if c))
# end def _free_text

handlers = dict \
    ( CNI = _consignment_no
    , GIN = _global_identifier
    , DTM = _date_time
    , STS = _status
    , FTX = _free_text
    )

def group_consignments (segments, qualifier = group_start):
    """ Partition segments into groups each starting with a segment
        with the given qualifier. Segments before the first such
        segment are dropped.
    >>> segs = tokenize (clean (msg_example))
    >>> groups = group_consignments (partition (segs) [1])
    >>> [[s.qualifier for s in g] for g in groups]
    [['CNI', 'STS'], ['CNI', 'FTX', 'UNT', 'UNZ']]
    >>> group_consignments (partition (segs) [0])
    ()
    """
    groups = []
    for s in segments:
        if s.is_a (qualifier):
            groups.append ([s])
        elif groups:
            groups [-1].append (s)
    return tuple (tuple (g) for g in groups)
# end def group_consignments

def map_consignment (segments):
    """ Fold the segments of one group into a Consignment, later
        segments override values of earlier ones.
    >>> segs = tokenize \\
    ...     ("CNI+1+CONS1'GIN+BN+00340434161234567890'STS+1+21:ZZZ'"
    ...      "DTM+334:20240115:102'FTX+AAI+++Delivered:Signed by Meier'")
    >>> c = map_consignment (segs)
    >>> c.number, c.global_identifier, c.status
    ('CONS1', '00340434161234567890', '21')
    >>> c.status_changed
    datetime.datetime(2024, 1, 15, 0, 0)
    >>> c.free_text
    'Delivered, Signed by Meier'
    """
    record = Consignment ()
    for segment in segments:
        handler = handlers.get (segment.qualifier.upper ())
        if handler is None:
            continue
        updates = handler (segment, record)
        updates = dict ((k, v) for k, v in updates.items () if v is not None)
        if updates:
            record = record.replace (** updates)
    return record
# end def map_consignment

def interchange_header (header):
    """ The first UNB segment or None """
    for unb in segment_iter (header, 'UNB'):
        return unb
    return None
# end def interchange_header

def creation_time (header, log = None):
    """ Creation date/time from the interchange header (UNB). The date
        has either 6 (YYMMDD, years are 20YY) or 8 digits (CCYYMMDD),
        the time has 4 digits. Return None if missing or malformed.
    >>> creation_time (tokenize ("UNB+UNOC:3+S+R+240115:1230+1'"))
    datetime.datetime(2024, 1, 15, 12, 30)
    >>> creation_time (tokenize ("UNB+UNOC:3+S+R+20240115:1230+1'"))
    datetime.datetime(2024, 1, 15, 12, 30)
    >>> creation_time (tokenize ("UNB+UNOC:3+S+R+2401:1230+1'")) is None
    True
    >>> creation_time (tokenize ("UNB+UNOC:3+S+R+241315:1230+1'")) is None
    True
    >>> creation_time (()) is None
    True
    """
    if log is None:
        log = logging.getLogger ('iftsta')
    unb = interchange_header (header)
    if unb is None:
        log.debug ('No UNB segment, creation date unknown')
        return None
    date = unb.component (3, 0) or ''
    time = unb.component (3, 1) or ''
    dt   = date + time
    if  (  len (date) not in (6, 8)
        or len (time) != 4
        or not (dt.isascii () and dt.isdigit ())
        ):
        log.debug ('Invalid UNB date/time: "%s:%s"' % (date, time))
        return None
    if len (date) == 6:
        dt = '20' + dt
    try:
        return datetime.strptime (dt, '%Y%m%d%H%M')
    except ValueError:
        log.debug ('Invalid UNB date/time: "%s:%s"' % (date, time))
        return None
# end def creation_time

def decode (text, executor = None, log = None):
    """ Decode an IFTSTA message given as text (or latin-1 bytes).
        If an executor (e.g. a concurrent.futures.ThreadPoolExecutor)
        is given, the consignment groups are mapped with its map
        method which returns results in group order.
    >>> d = decode (msg_example)
    >>> d.created, d.sender, d.recipient, d.control_ref
    (datetime.datetime(2024, 1, 15, 12, 30), 'SENDER01', 'RECIPIENT01', '1001')
    >>> [(c.number, c.status, c.free_text) for c in d.consignments]
    [('CONS0001', '21', None), ('CONS0002', None, 'Left hub: Vienna')]
    >>> decode ("UNB+UNOC:3+S+R+240115:1230+1'CNI+1+X'").consignments
    ()
    """
    if log is None:
        log = logging.getLogger ('iftsta')
    if isinstance (text, bytes):
        text = text.decode ('latin-1')
    segments     = tokenize (clean (text), log = log)
    header, data = partition (segments, message_start)
    groups       = group_consignments (data, group_start)
    if executor is None:
        consignments = [map_consignment (g) for g in groups]
    else:
        consignments = list (executor.map (map_consignment, groups))
    unb = interchange_header (header)
    d   = dict \
        ( created      = creation_time (header, log)
        , consignments = consignments
        )
    if unb is not None:
        d.update \
            ( sender      = _value (unb, 1)
            , recipient   = _value (unb, 2)
            , control_ref = _value (unb, 4)
            )
    log.debug ('Decoded %d consignments' % len (consignments))
    return Document (** d)
# end def decode

def load (path, encoding = 'latin-1', executor = None, log = None):
    """ Read and decode the IFTSTA message in file path """
    with open (path, encoding = encoding) as f:
        return decode (f.read (), executor = executor, log = log)
# end def load
