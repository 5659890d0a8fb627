import doctest

from iftsta import edifact, decoder

def run_doctests (module):
    result = doctest.testmod (module, verbose = False)
    assert result.attempted > 0
    assert result.failed == 0
# end def run_doctests

def test_edifact_doctests ():
    run_doctests (edifact)
# end def test_edifact_doctests

def test_decoder_doctests ():
    run_doctests (decoder)
# end def test_decoder_doctests
