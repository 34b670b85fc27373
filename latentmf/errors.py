#typed failures for the model core
#missing user/item factors at predict time are NOT errors, those are logged warnings in model.py


#vectors of different length got combined, means rank was configured wrong somewhere
class VectorLengthMismatch(ValueError):
    def __init__(self, left_length, right_length):
        self.left_length = left_length
        self.right_length = right_length
        super().__init__(
            f"vector length mismatch: {left_length} != {right_length}"
        )


#initialize got zero ratings and there is no prior model to take the bias from
class EmptyBatchBias(ValueError):
    def __init__(self, message="cannot compute global bias from an empty ratings batch without a prior model"):
        super().__init__(message)
