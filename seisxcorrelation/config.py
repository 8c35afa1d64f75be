import logging
import os
import yaml
log = logging.getLogger(__name__)

CORR_TYPES = ('acorr', 'xcorr', 'xchancorr')
CORR_METHODS = ('cross-correlation', 'coherence', 'deconv')
TIME_NORMS = ('none', 'one-bit', 'phase')
STACK_TYPES = ('mean', 'robust', 'pws', 'nroot')

FIRST_ORDER_KEYS = ('basefoname', 'timeunit', 'freqmin', 'freqmax', 'fs',
                    'cc_len', 'cc_step', 'to_whiten', 'time_norm',
                    'half_win', 'water_level', 'corrtype', 'corrmethod',
                    'maxtimelag', 'allstack', 'stacktype')
HIGH_ORDER_KEYS = ('start_lag', 'window_len', 'allowable_vs',
                   'allowable_pairs')


class Config:
    """Class representing the parameters of a cross-correlation run.

    Parameters
    ----------
    yaml_file : string
        The path to the yaml config file. Every parameter is required; no
        defaults are inferred. The high-order parameters (start_lag,
        window_len, allowable_vs, allowable_pairs) are only required when
        ``high_order`` is set.
    high_order : bool
        Whether to validate the parameters needed for C3 correlations
    """

    def __init__(self, yaml_file, high_order=False):
        with open(yaml_file, 'r') as f:
            s = yaml.safe_load(f)

        self.name = os.path.basename(yaml_file).rsplit(".", 1)[0]
        self._load(s, high_order)

    @classmethod
    def from_dict(cls, params, high_order=False, name='config'):
        cf = cls.__new__(cls)
        cf.name = name
        cf._load(dict(params), high_order)
        return cf

    def _load(self, s, high_order):
        if not isinstance(s, dict):
            raise ConfigException('Config must be a mapping of parameter '
                                  'names to values')

        required = FIRST_ORDER_KEYS + (HIGH_ORDER_KEYS if high_order else ())
        missing = [k for k in required if k not in s]
        if missing:
            raise ConfigException('Missing required parameters: {}'.format(
                ', '.join(missing)))

        self.high_order = high_order
        self.basefoname = str(s['basefoname'])
        self.timeunit = float(s['timeunit'])
        self.freqmin = float(s['freqmin'])
        self.freqmax = float(s['freqmax'])
        self.fs = float(s['fs'])
        self.cc_len = float(s['cc_len'])
        self.cc_step = float(s['cc_step'])
        self.to_whiten = bool(s['to_whiten'])
        self.time_norm = 'none' if s['time_norm'] in (None, False) \
            else str(s['time_norm'])
        self.half_win = int(s['half_win'])
        self.water_level = float(s['water_level'])
        corrtype = s['corrtype']
        if isinstance(corrtype, str):
            corrtype = [corrtype]
        self.corrtype = list(corrtype)
        self.corrmethod = str(s['corrmethod'])
        self.maxtimelag = float(s['maxtimelag'])
        self.allstack = bool(s['allstack'])
        self.stacktype = str(s['stacktype'])

        if high_order:
            # floats are seconds, ints are samples
            self.start_lag = s['start_lag']
            self.window_len = s['window_len']
            self.allowable_vs = read_list(s['allowable_vs'])
            self.allowable_pairs = read_list(s['allowable_pairs'])

        self.validate()
        log.info('Loaded parameters for {}'.format(self.name))

    def validate(self):
        if self.timeunit <= 0 or self.fs <= 0:
            raise ConfigException('timeunit and fs must be > 0')
        if not (0 <= self.freqmin < self.freqmax):
            raise ConfigException('Frequency band must satisfy '
                                  '0 <= freqmin < freqmax')
        if self.cc_len <= 0 or self.cc_step <= 0:
            raise ConfigException('cc_len and cc_step must be > 0')
        if self.cc_len > self.timeunit:
            raise ConfigException('cc_len must not exceed timeunit')
        if self.time_norm not in TIME_NORMS:
            raise ConfigException('Invalid time_norm {}; must be one of '
                                  '{}'.format(self.time_norm, TIME_NORMS))
        if self.half_win < 0 or self.water_level < 0:
            raise ConfigException('half_win and water_level must be >= 0')
        bad_types = [c for c in self.corrtype if c not in CORR_TYPES]
        if not self.corrtype or bad_types:
            raise ConfigException('corrtype must be a non-empty subset of '
                                  '{}'.format(CORR_TYPES))
        if self.corrmethod not in CORR_METHODS:
            raise ConfigException('Invalid corrmethod {}; must be one of '
                                  '{}'.format(self.corrmethod, CORR_METHODS))
        if self.maxtimelag <= 0:
            raise ConfigException('maxtimelag must be > 0')
        if self.stacktype not in STACK_TYPES:
            raise ConfigException('Invalid stacktype {}; must be one of '
                                  '{}'.format(self.stacktype, STACK_TYPES))
        if self.high_order:
            for k in ('start_lag', 'window_len'):
                v = getattr(self, k)
                if isinstance(v, bool) or not isinstance(v, (int, float)):
                    raise ConfigException('{} must be a number'.format(k))
            if self.window_len <= 0 or self.start_lag < 0:
                raise ConfigException('window_len must be > 0 and '
                                      'start_lag >= 0')

    def to_samples(self, value):
        """Converts a lag given in seconds (float) to samples; ints are
        taken to be samples already."""
        if isinstance(value, float):
            return int(round(value * self.fs))
        return int(value)

    def as_dict(self):
        keys = FIRST_ORDER_KEYS + (HIGH_ORDER_KEYS if self.high_order else ())
        return {k: getattr(self, k) for k in keys}


def read_list(value):
    """Returns a list of entries, reading them one per line from a text file
    if value is a path."""
    if isinstance(value, str):
        if not os.path.exists(value):
            raise ConfigException('List file not found: {}'.format(value))
        with open(value, 'r') as f:
            return [l.strip() for l in f.readlines() if len(l.strip())]
    return [str(v) for v in value]


class ConfigException(Exception):
    pass
