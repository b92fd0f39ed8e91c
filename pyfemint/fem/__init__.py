from .elements import (FunctionSpace, MapType, FiniteElement, LagrangeElement,
                       NedelecElement, RaviartThomasElement)
from .transform import (ElementTransformation, FaceTransformation,
                        FaceElementTransformations, IntegrationPointTransformation,
                        make_face_transformations, make_int_point, inverse_mapping)
from .coefficients import (Coefficient, ConstantCoefficient, PWConstCoefficient,
                           FunctionCoefficient, VectorCoefficient,
                           VectorConstantCoefficient, VectorFunctionCoefficient,
                           MatrixCoefficient, MatrixConstantCoefficient,
                           MatrixFunctionCoefficient)
