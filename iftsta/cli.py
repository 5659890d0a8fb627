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

import os
import sys
import json
import logging
from argparse           import ArgumentParser
from concurrent.futures import ThreadPoolExecutor
from rsclib.execute     import Log
from rsclib.Config_File import Config_File
from iftsta             import decoder

class Config (Config_File):

    config   = 'iftsta_config'
    path     = '/etc/iftsta'
    defaults = dict \
        ( ENCODING      = 'latin-1'
        # 'text' or 'json'
        , OUTPUT_FORMAT = 'text'
        # Number of threads for mapping consignments, 0 = no threads
        , PARALLEL      = 0
        )

    def __init__ (self, path = path, config = config):
        self.__super.__init__ (path, config, ** self.defaults)
    # end def __init__

# end class Config

def get_config (opt):
    """ Configuration from the -c option or the default location.
        Without a configuration file we return the defaults, the
        result supports 'get' in both cases.
    """
    config  = Config.config
    cfgpath = Config.path
    if opt.config:
        cfgpath, config = os.path.split (opt.config)
        config = os.path.splitext (config) [0]
    elif not os.path.exists (os.path.join (cfgpath, config + '.py')):
        return dict (Config.defaults)
    return Config (path = cfgpath, config = config)
# end def get_config

class IFTSTA_Reader (Log):
    """ Decode IFTSTA files and print the result
    """

    labels = \
        ( ('sender',            'Sender-ID')
        , ('recipient',         'Recipient-ID')
        , ('control_ref',       'Control-Ref')
        , ('created',           'Created')
        )
    consignment_labels = \
        ( ('number',            'Consignment')
        , ('global_identifier', 'Global-ID')
        , ('status',            'Status')
        , ('status_changed',    'Status-Date')
        , ('free_text',         'Free-Text')
        )

    def __init__ (self, cfg, opt, ** kw):
        self.cfg      = cfg
        self.opt      = opt
        self.encoding = opt.encoding or cfg.get ('ENCODING')
        self.format   = opt.format   or cfg.get ('OUTPUT_FORMAT')
        self.parallel = opt.parallel
        if self.parallel is None:
            self.parallel = cfg.get ('PARALLEL')
        if 'log_level' not in kw:
            kw ['log_level'] = getattr (logging, opt.log_level.upper ())
        self.__super.__init__ (** kw)
        if opt.log_file:
            handler = logging.FileHandler (opt.log_file)
            level   = getattr (logging, opt.file_log_level.upper ())
            handler.setLevel (level)
            self.log.addHandler (handler)
    # end def __init__

    def decode (self, text):
        if self.parallel:
            with ThreadPoolExecutor (max_workers = self.parallel) as ex:
                return decoder.decode (text, executor = ex, log = self.log)
        return decoder.decode (text, log = self.log)
    # end def decode

    def read (self, path):
        """ Decode file with given path, '-' is stdin """
        if path == '-':
            return self.decode (sys.stdin.read ())
        with open (path, encoding = self.encoding) as f:
            return self.decode (f.read ())
    # end def read

    def report (self, name, doc):
        if self.format == 'json':
            d = doc.as_dict ()
            d ['file'] = name
            print (json.dumps (d, sort_keys = True, indent = 4))
            return
        print ("%13s: %s" % ('File', name))
        for attr, label in self.labels:
            print ("%13s: %s" % (label, self.fmt (getattr (doc, attr))))
        for c in doc.consignments:
            for attr, label in self.consignment_labels:
                v = getattr (c, attr)
                if v is not None:
                    print ("%13s: %s" % (label, self.fmt (v)))
    # end def report

    def fmt (self, value):
        if value is None:
            return ''
        if hasattr (value, 'strftime'):
            return value.strftime ('%Y-%m-%d %H:%M')
        return value
    # end def fmt

# end class IFTSTA_Reader

def main ():
    cmd = ArgumentParser ()
    cmd.add_argument \
        ( "files"
        , help    = "IFTSTA files to decode, '-' or none for stdin"
        , nargs   = '*'
        )
    cmd.add_argument \
        ( "-c", "--config"
        , help    = "Configuration file"
        )
    cmd.add_argument \
        ( "-e", "--encoding"
        , help    = "Encoding of input files, default from config: latin-1"
        )
    cmd.add_argument \
        ( "--file-log-level"
        , help    = "Loglevel for logging to file, default=%(default)s,"
                    " this is only relevant with --log-file option"
        , default = 'INFO'
        , choices = ('CRITICAL', 'ERROR', 'WARNING', 'INFO', 'DEBUG')
        )
    cmd.add_argument \
        ( "-f", "--format"
        , help    = "Output format, default from config: text"
        , choices = ('text', 'json')
        )
    cmd.add_argument \
        ( "-j", "--parallel"
        , help    = "Number of threads for mapping consignments"
        , type    = int
        )
    cmd.add_argument \
        ( "--log-file"
        , help    = "Log to file in addtion to syslog"
        )
    cmd.add_argument \
        ( "--log-level"
        , help    = "Loglevel for logging backend, default=%(default)s"
        , default = 'INFO'
        , choices = ('CRITICAL', 'ERROR', 'WARNING', 'INFO', 'DEBUG')
        )
    opt    = cmd.parse_args ()
    cfg    = get_config (opt)
    reader = IFTSTA_Reader (cfg, opt)
    files  = opt.files or ['-']
    errors = 0
    for path in files:
        try:
            doc = reader.read (path)
        except Exception:
            reader.log_exception ()
            reader.log.error ("Error decoding %s" % path)
            errors += 1
            continue
        reader.report (path, doc)
    reader.log.info \
        ("Decoded %d of %d files" % (len (files) - errors, len (files)))
    if errors:
        return 1
    return 0
# end def main

if __name__ == '__main__':
    sys.exit (main ())
