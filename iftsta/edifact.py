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

""" This implements enough EDIFACT to tokenize IFTSTA messages:
    Splitting the raw text into segments, data elements and
    components and separating the interchange header from the
    business data.
    We only support the default service characters, an UNA service
    string advice at the start of the message is removed.
"""

import logging
from rsclib.autosuper import autosuper

# Default service characters, see the UNA segment:
# component separator, element separator, decimal mark, release
# character, reserved (space) and segment terminator.
service_string_advice = 'UNA:+.?'
component_sep         = ':'
element_sep           = '+'
release_char          = '?'
segment_terminator    = "'"

msg_example = \
    ( "UNA:+.? '"
      "UNB+UNOC:3+SENDER01:ZZ+RECIPIENT01:ZZ+240115:1230+1001'"
      "UNH+1+IFTSTA:D:01B:UN'"
      "BGM+77+STATUS0001+9'"
      "DTM+137:202401151230:203'"
      "CNI+1+CONS0001'"
      "STS+1+21'"
      "CNI+2+CONS0002'"
      "FTX+AAI+++Left hub?: Vienna'"
      "UNT+8+1'"
      "UNZ+1+1001'"
    )

def iterparts (text, delimiter, release = release_char):
    """ Iterate over parts delimited with delimiter taking the release
        character into account: A delimiter preceded by an odd
        number of release characters is part of the text.
        Like str.split we always yield the part after the last
        delimiter, even if it is empty.
    >>> tuple (iterparts ('Abt. ABT-1????:Herr Meier', ':'))
    ('Abt. ABT-1????', 'Herr Meier')
    >>> tuple (iterparts ('Abt. ABT-1??:Herr Meier', ':'))
    ('Abt. ABT-1??', 'Herr Meier')
    >>> tuple (iterparts ('Abt. ABT-1?:Herr Meier', ':'))
    ('Abt. ABT-1?:Herr Meier',)
    >>> tuple (iterparts ('DE+ED0590021', '+'))
    ('DE', 'ED0590021')
    >>> tuple (iterparts ('?+49-40:6667788+bla', '+'))
    ('?+49-40:6667788', 'bla')
    >>> tuple (iterparts ('AAI+++Text', '+'))
    ('AAI', '', '', 'Text')
    >>> tuple (iterparts ('1+CONS1+', '+'))
    ('1', 'CONS1', '')
    >>> tuple (iterparts ('', ':'))
    ('',)
    """
    offs = 0
    idx  = text.find (delimiter)
    while idx >= 0:
        # Count release characters immediately before the delimiter
        eidx = idx
        while eidx > offs and text [eidx-1:eidx] == release:
            eidx -= 1
        if (idx - eidx) % 2 == 0:
            yield text [offs:idx]
            offs = idx + 1
        idx = text.find (delimiter, idx + 1)
    yield text [offs:]
# end def iterparts

def unquote (text, release = release_char):
    """ Remove quoting (with release character)
    >>> unquote ('?+49-40-123-0')
    '+49-40-123-0'
    >>> unquote ('Abt. ABT-1??')
    'Abt. ABT-1?'
    >>> unquote ("?+49-40-123-0???'")
    "+49-40-123-0?'"
    >>> unquote ('plain')
    'plain'
    """
    r    = []
    offs = 0
    idx  = text.find (release, offs)
    while idx >= 0:
        r.append (text [offs:idx])
        r.append (text [idx+1:idx+2])
        offs = idx + 2
        idx  = text.find (release, offs)
    r.append (text [offs:])
    return ''.join (r)
# end def unquote

def clean (text):
    """ Remove line breaks and everything up to and including the
        service string advice.
    >>> clean ("UNA:+.? '\\r\\nUNB+UNOC:3'\\r\\nCNI+1+X'")
    "'UNB+UNOC:3'CNI+1+X'"
    >>> clean ("CNI+1+X'\\n")
    "CNI+1+X'"
    """
    text = text.replace ('\r', '').replace ('\n', '')
    idx  = text.find (service_string_advice)
    if idx >= 0:
        text = text [idx + len (service_string_advice):]
    return text.strip ()
# end def clean

class Data_Element (autosuper):
    """ An edifact data element (elements are delimited by the data
        element separator, usually '+'), consisting of components
        (delimited by the component separator, usually ':').
        Components not present in the message are returned as None.
    >>> e = Data_Element.from_text ('334:20240115:102')
    >>> e.component (0), e.component (2), e.component (3)
    ('334', '102', None)
    >>> len (e)
    3
    >>> Data_Element.from_text ('Left hub?: Vienna').components
    ('Left hub: Vienna',)
    >>> Data_Element.from_text ('').components
    ('',)
    """

    def __init__ (self, *components):
        self.components = tuple (components)
    # end def __init__

    @classmethod
    def from_text (cls, text):
        parts = iterparts (text, component_sep)
        return cls (* (unquote (p) for p in parts))
    # end def from_text

    def component (self, idx):
        if 0 <= idx < len (self.components):
            return self.components [idx]
        return None
    # end def component

    def __eq__ (self, other):
        if not isinstance (other, Data_Element):
            return NotImplemented
        return self.components == other.components
    # end def __eq__

    def __hash__ (self):
        return hash (self.components)
    # end def __hash__

    def __iter__ (self):
        return iter (self.components)
    # end def __iter__

    def __len__ (self):
        return len (self.components)
    # end def __len__

    def __str__ (self):
        return component_sep.join (self.components)
    # end def __str__

    def __repr__ (self):
        return 'Data_Element%r' % (self.components,)
    # end def __repr__

# end class Data_Element

class Segment (autosuper):
    """ An EDIFACT segment: A (usually 3-letter) qualifier followed by
        data elements, terminated by the segment terminator.
    >>> s = Segment ('DTM', (Data_Element ('334', '202401151230', '203'),))
    >>> s.component (0, 1)
    '202401151230'
    >>> s.component (1, 0) is None
    True
    >>> s.element (3) is None
    True
    >>> s.is_a ('dtm')
    True
    >>> s
    Segment ('DTM+334:202401151230:203')
    """

    def __init__ (self, qualifier, elements = ()):
        self.qualifier = qualifier
        self.elements  = tuple (elements)
    # end def __init__

    def component (self, eidx, cidx = 0):
        """ Component cidx of element eidx, None if missing """
        e = self.element (eidx)
        if e is None:
            return None
        return e.component (cidx)
    # end def component

    def element (self, idx):
        if 0 <= idx < len (self.elements):
            return self.elements [idx]
        return None
    # end def element

    def is_a (self, qualifier):
        return self.qualifier.upper () == qualifier.upper ()
    # end def is_a

    def __eq__ (self, other):
        if not isinstance (other, Segment):
            return NotImplemented
        return \
            (  (self.qualifier, self.elements)
            == (other.qualifier, other.elements)
            )
    # end def __eq__

    def __hash__ (self):
        return hash ((self.qualifier, self.elements))
    # end def __hash__

    def __len__ (self):
        return len (self.elements)
    # end def __len__

    def __str__ (self):
        r = [self.qualifier]
        for e in self.elements:
            r.append (str (e))
        return element_sep.join (r)
    # end def __str__

    def __repr__ (self):
        return 'Segment (%r)' % str (self)
    # end def __repr__

# end class Segment

def tokenize (text, log = None):
    """ Split cleaned text into segments.
        Fragments without an element separator are skipped, these are
        empty or stray text between segment terminators.
    >>> segs = tokenize ("UNB+UNOC:3+S'stray'CNI+1+CONS1''FTX+AAI+++It?'s late'")
    >>> [s.qualifier for s in segs]
    ['UNB', 'CNI', 'FTX']
    >>> segs [0].element (0)
    Data_Element('UNOC', '3')
    >>> segs [2].component (3)
    "It's late"
    >>> tokenize ('')
    ()
    """
    if log is None:
        log = logging.getLogger ('iftsta')
    segments = []
    for fragment in iterparts (text, segment_terminator):
        parts = list (iterparts (fragment, element_sep))
        if len (parts) < 2:
            if fragment.strip ():
                log.debug ('Skipping fragment without separator: %r' % fragment)
            continue
        elements = tuple (Data_Element.from_text (p) for p in parts [1:])
        segments.append (Segment (parts [0].strip (), elements))
    return tuple (segments)
# end def tokenize

def partition (segments, qualifier = 'BGM'):
    """ Split segments into the header region (everything before the
        first segment with the given qualifier) and the data region
        (starting with that segment). Without such a segment the data
        region is empty.
    >>> segs = tokenize (clean (msg_example))
    >>> header, data = partition (segs)
    >>> [s.qualifier for s in header]
    ['UNB', 'UNH']
    >>> [s.qualifier for s in data] [:3]
    ['BGM', 'DTM', 'CNI']
    >>> header, data = partition (segs, 'XXX')
    >>> len (header) == len (segs), data
    (True, ())
    """
    segments = tuple (segments)
    for idx, s in enumerate (segments):
        if s.is_a (qualifier):
            return segments [:idx], segments [idx:]
    return segments, ()
# end def partition

def segment_iter (segments, qualifier):
    for s in segments:
        if s.is_a (qualifier):
            yield s
# end def segment_iter
