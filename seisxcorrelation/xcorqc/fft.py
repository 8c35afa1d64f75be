import numpy

# Try and use the faster Fourier transform functions from the pyfft module if
# available
try:
    import pyfftw

    pyfftw.interfaces.cache.enable()
    pyfftw.interfaces.cache.set_keepalive_time(100)

    from pyfftw.interfaces.numpy_fft import rfft as rfft
    from pyfftw.interfaces.numpy_fft import irfft as irfft
except ImportError:
    from numpy.fft import rfft, irfft
# end try

def lag_indices(npts, maxlag):
    """
    Returns indices into the (unshifted) output of an inverse FFT of length npts that
    select lags within [-maxlag, maxlag] samples, ordered by increasing lag, along with
    the corresponding lags.
    """
    lags = numpy.rint(numpy.fft.fftfreq(npts, 1./npts)).astype(int)
    ind = numpy.where(numpy.abs(lags) <= maxlag)[0]
    ind = ind[numpy.argsort(lags[ind], kind='stable')]
    return ind, lags[ind]
# end func
