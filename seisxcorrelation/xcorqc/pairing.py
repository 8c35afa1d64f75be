"""
Description:
    Generates, sorts and classifies station-pairs. Station identifiers take the form
    NET.STA.LOC.CHA; pair names join two identifiers with a '.', e.g.
    'BP.CCRB..BP1.BP.EADB..BP1'

CreationDate:   21/01/19

Revision History:
    LastUpdate:     21/01/19   Pair classification
    LastUpdate:     07/03/19   Pair-name helpers for high-order correlations
"""

from collections import OrderedDict

CORR_TYPES = ('acorr', 'xcorr', 'xchancorr')


def parse_station(stn):
    """
    Splits a station identifier into its components

    :param stn: NET.STA.LOC.CHA
    :return: (net, sta, loc, cha)
    """
    parts = stn.split('.')
    if len(parts) != 4:
        raise ValueError('Malformed station identifier {}; expected '
                         'NET.STA.LOC.CHA'.format(stn))
    # end if
    return tuple(parts)
# end func


def get_corrtype(stn1, stn2):
    """
    Determines the correlation type of a station-pair

    :param stn1: NET.STA.LOC.CHA
    :param stn2: NET.STA.LOC.CHA
    :return: 'acorr' for identical identifiers, 'xchancorr' for different channels
             of the same NET.STA.LOC and 'xcorr' otherwise
    """
    net1, sta1, loc1, cha1 = parse_station(stn1)
    net2, sta2, loc2, cha2 = parse_station(stn2)

    if stn1 == stn2:
        return 'acorr'
    elif (net1, sta1, loc1) == (net2, sta2, loc2) and cha1 != cha2:
        return 'xchancorr'
    else:
        return 'xcorr'
    # end if
# end func


def generate_pairs(stations):
    """
    Upper-triangular station-pairs, including self-pairs, in list order, i.e.
    N(N+1)/2 pairs for N stations
    """
    stations = list(stations)
    return [(stations[i], stations[j])
            for i in range(len(stations)) for j in range(i, len(stations))]
# end func


def sort_pairs(pairs):
    """
    Groups station-pairs by correlation type

    :param pairs: iterable of (stn1, stn2)
    :return: OrderedDict keyed by 'acorr', 'xcorr' and 'xchancorr'
    """
    result = OrderedDict((ct, []) for ct in CORR_TYPES)
    for stn1, stn2 in pairs:
        result[get_corrtype(stn1, stn2)].append((stn1, stn2))
    # end for
    return result
# end func


def pair_name(stn1, stn2):
    return '{}.{}'.format(stn1, stn2)
# end func


def split_pair_name(name):
    """Inverse of pair_name"""
    parts = name.split('.')
    if len(parts) != 8:
        raise ValueError('Malformed station-pair name {}'.format(name))
    # end if
    stn1, stn2 = '.'.join(parts[:4]), '.'.join(parts[4:])
    return stn1, stn2
# end func
