""" Example configuration for the iftsta command """

# Encoding of input files, UNOC messages are latin-1
ENCODING      = 'latin-1'
# Output format, 'text' or 'json'
OUTPUT_FORMAT = 'json'
# Map consignments of large messages in 4 threads, 0 = no threads
PARALLEL      = 4
