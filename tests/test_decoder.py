from concurrent.futures import ThreadPoolExecutor
from datetime           import datetime

import pytest

from iftsta.decoder import decode, load, map_consignment, Date_Parse_Error
from iftsta.decoder import Consignment, Document
from iftsta.edifact import tokenize

header = \
    ( "UNA:+.? '"
      "UNB+UNOC:3+SENDER01:ZZ+RECIPIENT01:ZZ+240115:1230+REF42'"
      "UNH+1+IFTSTA:D:01B:UN'"
    )
body = "BGM+77+STATUS0001+9'"

def message (*segments):
    return header + body + ''.join (s + "'" for s in segments)
# end def message

def test_empty_input ():
    doc = decode ('')
    assert doc.consignments == ()
    assert doc.created is None
    assert doc.sender is None
# end def test_empty_input

def test_no_consignments ():
    doc = decode (message ("DTM+137:202401151230:203", "NAD+CZ+1234"))
    assert doc.consignments == ()
    assert doc.created == datetime (2024, 1, 15, 12, 30)
# end def test_no_consignments

def test_no_bgm ():
    doc = decode (header + "CNI+1+CONS1'STS+1+21'")
    assert doc.consignments == ()
# end def test_no_bgm

def test_full_consignment ():
    text = message \
        ( "CNI+1+CONS1"
        , "GIN+BN+00340434161234567890"
        , "DTM+334:202401151230:203"
        , "STS+1+21"
        , "FTX+AAI+++Delivered"
        )
    doc = decode (text)
    assert len (doc.consignments) == 1
    c = doc.consignments [0]
    assert c.number            == 'CONS1'
    assert c.global_identifier == '00340434161234567890'
    assert c.status            == '21'
    assert c.free_text         == 'Delivered'
    assert c.status_changed    == datetime (2024, 1, 15, 12, 30)
# end def test_full_consignment

def test_group_count_and_order ():
    numbers = ['C%03d' % n for n in range (20)]
    text    = message (* ("CNI+%d+%s" % (n, c) for n, c in enumerate (numbers)))
    doc     = decode (text)
    assert [c.number for c in doc.consignments] == numbers
    assert decode (text) == doc
# end def test_group_count_and_order

def test_consecutive_group_start ():
    doc = decode (message ("CNI+1+A", "CNI+2+B", "STS+1+21"))
    assert [c.number for c in doc.consignments] == ['A', 'B']
    assert doc.consignments [0].status is None
    assert doc.consignments [1].status == '21'
# end def test_consecutive_group_start

def test_lowercase_group_start ():
    doc = decode (message ("cni+1+A", "STS+1+21"))
    assert doc.consignments [0].number == 'A'
    assert doc.consignments [0].status == '21'
# end def test_lowercase_group_start

def test_segments_before_first_group ():
    doc = decode (message ("STS+1+99", "CNI+1+A"))
    assert len (doc.consignments) == 1
    assert doc.consignments [0].status is None
# end def test_segments_before_first_group

def test_short_date ():
    doc = decode (message ("CNI+1+A", "DTM+334:20240115:102"))
    assert doc.consignments [0].status_changed == datetime (2024, 1, 15)
# end def test_short_date

def test_default_date_format ():
    doc = decode (message ("CNI+1+A", "DTM+334:202401151230"))
    assert doc.consignments [0].status_changed == datetime (2024, 1, 15, 12, 30)
# end def test_default_date_format

def test_other_dtm_qualifier_ignored ():
    doc = decode (message ("CNI+1+A", "DTM+137:garbage:203"))
    assert doc.consignments [0].status_changed is None
# end def test_other_dtm_qualifier_ignored

def test_sts_with_three_elements ():
    doc = decode (message ("CNI+1+A", "STS+1+21+ZZZ"))
    assert doc.consignments [0].status is None
# end def test_sts_with_three_elements

def test_free_text_missing ():
    doc = decode (message ("CNI+1+A", "FTX+AAI", "FTX+AAI+++"))
    assert doc.consignments [0].free_text is None
# end def test_free_text_missing

def test_free_text_parts ():
    doc = decode (message ("CNI+1+A", "FTX+AAI+++Delivered::Signed"))
    assert doc.consignments [0].free_text == 'Delivered, Signed'
# end def test_free_text_parts

def test_last_write_wins ():
    doc = decode (message ("CNI+1+A", "STS+1+21", "STS+1+99", "STS+1+"))
    assert doc.consignments [0].status == '99'
# end def test_last_write_wins

def test_header_short_date ():
    doc = decode (message ())
    assert doc.created     == datetime (2024, 1, 15, 12, 30)
    assert doc.sender      == 'SENDER01'
    assert doc.recipient   == 'RECIPIENT01'
    assert doc.control_ref == 'REF42'
# end def test_header_short_date

def test_header_long_date ():
    text = "UNB+UNOC:3+S+R+20240115:1230+1'" + body
    assert decode (text).created == datetime (2024, 1, 15, 12, 30)
# end def test_header_long_date

@pytest.mark.parametrize \
    ( 'datetime_element'
    , ('240115', '240115:123', '2024011:1230', '24o115:1230', '240230:1230')
    )
def test_header_malformed_date (datetime_element):
    text = "UNB+UNOC:3+S+R+%s+1'" % datetime_element + body + "CNI+1+A'"
    doc  = decode (text)
    assert doc.created is None
    assert len (doc.consignments) == 1
# end def test_header_malformed_date

@pytest.mark.parametrize \
    ( 'dtm'
    , ( 'DTM+334:2024011512:203'
      , 'DTM+334:202401151230:102'
      , 'DTM+334:2024O115:102'
      , 'DTM+334:20241315:102'
      , 'DTM+334:202401152530'
      )
    )
def test_date_parse_error (dtm):
    with pytest.raises (Date_Parse_Error) as err:
        decode (message ("CNI+1+OK", "CNI+2+BAD", dtm, "CNI+3+LATER"))
    assert err.value.consignment_no == 'BAD'
    assert err.value.value == dtm.split (':') [1]
    assert 'BAD' in str (err.value)
    assert isinstance (err.value, ValueError)
# end def test_date_parse_error

def test_date_parse_error_before_number ():
    segs = tokenize ("CNI+1'DTM+334:2024:203'")
    with pytest.raises (Date_Parse_Error) as err:
        map_consignment (segs)
    assert err.value.consignment_no is None
    assert err.value.format == '203'
# end def test_date_parse_error_before_number

def test_stray_fragments ():
    text = message ("CNI+1+A", "stray text", "STS+1+21", "  ", "CNI+2+B", "")
    doc  = decode (text)
    assert [c.number for c in doc.consignments] == ['A', 'B']
    assert doc.consignments [0].status == '21'
# end def test_stray_fragments

def test_line_breaks ():
    text = message ("CNI+1+A", "STS+1+21").replace ("'", "'\r\n")
    doc  = decode (text)
    assert doc.consignments [0].status == '21'
    assert doc.created == datetime (2024, 1, 15, 12, 30)
# end def test_line_breaks

def test_bytes_input ():
    text = message ("CNI+1+A", "FTX+AAI+++Zugestellt an Müller")
    doc  = decode (text.encode ('latin-1'))
    assert doc.consignments [0].free_text == 'Zugestellt an Müller'
# end def test_bytes_input

def test_executor_keeps_order ():
    numbers = ['C%03d' % n for n in range (50)]
    segs    = []
    for n, c in enumerate (numbers):
        segs.append ("CNI+%d+%s" % (n, c))
        segs.append ("STS+1+%d" % n)
    text = message (* segs)
    with ThreadPoolExecutor (max_workers = 8) as ex:
        doc = decode (text, executor = ex)
    assert [c.number for c in doc.consignments] == numbers
    assert [c.status for c in doc.consignments] == [str (n) for n in range (50)]
    assert doc == decode (text)
# end def test_executor_keeps_order

def test_executor_propagates_error ():
    text = message ("CNI+1+A", "CNI+2+B", "DTM+334:bad")
    with ThreadPoolExecutor (max_workers = 2) as ex:
        with pytest.raises (Date_Parse_Error):
            decode (text, executor = ex)
# end def test_executor_propagates_error

def test_load (tmp_path):
    path = tmp_path / 'status.edi'
    text = message ("CNI+1+A", "FTX+AAI+++Übergeben")
    path.write_bytes (text.replace ("'", "'\n").encode ('latin-1'))
    doc  = load (str (path))
    assert doc.consignments [0].free_text == 'Übergeben'
# end def test_load

def test_load_missing_file (tmp_path):
    with pytest.raises (OSError):
        load (str (tmp_path / 'missing.edi'))
# end def test_load_missing_file

def test_as_dict ():
    doc = decode (message ("CNI+1+A", "DTM+334:20240115:102"))
    d   = doc.as_dict ()
    assert d ['created'] == '2024-01-15T12:30:00'
    assert d ['consignments'] == \
        [ dict
            ( number            = 'A'
            , global_identifier = None
            , status            = None
            , status_changed    = '2024-01-15T00:00:00'
            , free_text         = None
            )
        ]
# end def test_as_dict

def test_records_are_immutable ():
    doc = decode (message ("CNI+1+A"))
    with pytest.raises (AttributeError):
        doc.created = None
    with pytest.raises (AttributeError):
        doc.consignments [0].number = 'B'
    with pytest.raises (TypeError):
        Consignment (no = 'A')
    assert isinstance (doc, Document)
# end def test_records_are_immutable
