from .base import (BilinearFormIntegrator, TransposeIntegrator, LumpedIntegrator,
                   InverseIntegrator, SumIntegrator)
from .scalar import (DiffusionIntegrator, MassIntegrator, ConvectionIntegrator,
                     GroupConvectionIntegrator, DerivativeIntegrator)
from .vector import (CurlCurlIntegrator, VectorCurlCurlIntegrator, VectorFEMassIntegrator,
                     VectorFEDivergenceIntegrator, VectorFECurlIntegrator, DivDivIntegrator,
                     VectorMassIntegrator, VectorDivergenceIntegrator,
                     VectorDiffusionIntegrator, ElasticityIntegrator)
from .dg import DGTraceIntegrator, DGDiffusionIntegrator, TraceJumpIntegrator
